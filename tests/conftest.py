#!/usr/bin/env python3
# CUI // SP-CTI
"""Shared pytest fixtures for the goport test suite.

Sample-project builders write small but realistic source trees (manifest,
routes, views, models) into ``tmp_path`` so every stage of the pipeline
can be exercised without network access or real frameworks installed.
"""

import json
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path
BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))


def write_files(root: Path, files: dict) -> Path:
    """Write ``{relative path: content}`` under root and return root."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


EXPRESS_APP = {
    "package.json": json.dumps({
        "name": "shop",
        "dependencies": {"express": "^4.19.2", "pg": "^8.11.0", "ejs": "^3.1.9"},
    }),
    "README.md": "# Shop\n",
    ".gitignore": "node_modules/\n",
    "server.js": (
        "const express = require('express');\n"
        "const app = express();\n"
        "app.get('/', (req, res) => res.render('index'));\n"
        "app.listen(3000);\n"
    ),
    "routes/users.js": (
        "const router = require('express').Router();\n"
        "router.get('/users', listUsers);\n"
        "router.get('/users/:id', showUser);\n"
        "router.post('/users', createUser);\n"
        "module.exports = router;\n"
    ),
    "views/index.ejs": (
        "<h1><%= title %></h1>\n"
        "<ul>\n"
        "<% users.forEach(function(user) { %>\n"
        "  <li><%= user.name %></li>\n"
        "<% }) %>\n"
        "</ul>\n"
    ),
    "models/user.js": "const User = sequelize.define('User', { name: DataTypes.STRING });\n",
}

DJANGO_APP = {
    "requirements.txt": "Django==4.2.7\npsycopg2-binary==2.9.9\n",
    "blog/urls.py": (
        "from django.urls import path\n"
        "from . import views\n\n"
        "urlpatterns = [\n"
        "    path('', views.index, name='index'),\n"
        "    path('posts/<int:pk>/', views.detail, name='detail'),\n"
        "]\n"
    ),
    "blog/models.py": (
        "from django.db import models\n\n"
        "class BlogPost(models.Model):\n"
        "    title = models.CharField(max_length=200)\n"
    ),
    "blog/templates/blog/index.html": (
        "{% extends 'base.html' %}\n"
        "{% for post in posts %}\n"
        "<h2>{{ post.title }}</h2>\n"
        "{% endfor %}\n"
    ),
}

LARAVEL_APP = {
    "composer.json": json.dumps({"require": {"php": "^8.1", "laravel/framework": "^10.0"}}),
    "routes/web.php": (
        "<?php\n"
        "use App\\Http\\Controllers\\PostController;\n"
        "Route::get('/posts/{post}', [PostController::class, 'show']);\n"
    ),
    "resources/views/posts/show.blade.php": "<h1>{{ $post->title }}</h1>\n",
}

RAILS_APP = {
    "Gemfile": "source 'https://rubygems.org'\ngem 'rails', '~> 7.1'\ngem 'sqlite3'\n",
    "config/routes.rb": (
        "Rails.application.routes.draw do\n"
        "  root 'home#index'\n"
        "  resources :articles, only: [:index, :show]\n"
        "end\n"
    ),
    "app/views/articles/index.html.erb": (
        "<% @articles.each do |article| %>\n"
        "  <p><%= article.title %></p>\n"
        "<% end %>\n"
    ),
}

FLASK_APP = {
    "requirements.txt": "Flask==3.0.0\nFlask-SQLAlchemy==3.1.1\n",
    "app.py": (
        "from flask import Flask, render_template\n"
        "app = Flask(__name__)\n\n"
        "@app.route('/')\n"
        "def index():\n"
        "    return render_template('home.html', title='Blog')\n"
    ),
    "models.py": (
        "class User(db.Model):\n"
        "    __tablename__ = 'user'\n"
        "    id = db.Column(db.Integer, primary_key=True)\n"
    ),
    "templates/home.html": "<h1>{{ title }}</h1>\n",
    "templates/layout.html": "<main>{{ content }}</main>\n",
}

NEXTJS_APP = {
    "package.json": json.dumps({"dependencies": {"next": "14.1.0", "react": "18.2.0", "express": "^4.18.0"}}),
    "pages/api/users/[id].js": (
        "export default function handler(req, res) {\n"
        "  if (req.method === 'GET') { res.json({}) }\n"
        "}\n"
    ),
    "pages/index.jsx": "export default function Home() { return <div/> }\n",
}


@pytest.fixture
def express_project(tmp_path):
    """Express app with a route module, an EJS view, a model and a README."""
    root = write_files(tmp_path / "shop", EXPRESS_APP)
    (root / ".git").mkdir()
    return root


@pytest.fixture
def django_project(tmp_path):
    return write_files(tmp_path / "blog", DJANGO_APP)


@pytest.fixture
def laravel_project(tmp_path):
    return write_files(tmp_path / "posts", LARAVEL_APP)


@pytest.fixture
def rails_project(tmp_path):
    return write_files(tmp_path / "news", RAILS_APP)


@pytest.fixture
def flask_project(tmp_path):
    """Flask app whose views and table collide with built-in names."""
    return write_files(tmp_path / "blog", FLASK_APP)


@pytest.fixture
def nextjs_project(tmp_path):
    return write_files(tmp_path / "front", NEXTJS_APP)


@pytest.fixture
def empty_project(tmp_path):
    root = tmp_path / "empty"
    root.mkdir()
    return root


@pytest.fixture(autouse=True)
def _clear_goport_env(monkeypatch):
    """Keep GOPORT_* variables from the developer's shell out of the tests."""
    for var in ("GOPORT_SCOPE", "GOPORT_DATABASE", "GOPORT_ADMIN_UI",
                "GOPORT_DEPLOY", "GOPORT_MODULE_PREFIX"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("FORCE_COLOR", raising=False)
