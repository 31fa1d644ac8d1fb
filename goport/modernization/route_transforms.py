#!/usr/bin/env python3
# CUI // SP-CTI
"""Route table transforms: framework routing declarations -> Echo routes.

Each transform is a small set of regex substitutions for the routing
styles goport knows about. A line that looks like routing but matches none
of the patterns becomes a manual-review item rather than a guess.

Supported:
    express-routes     app.get('/users/:id', handler)
    nextjs-api-route   pages/api/users/[id].js
    nextjs-app-route   app/api/users/[id]/route.ts  (export function GET)
    django-urls        path('articles/<int:year>/', views.year_archive)
    flask-routes       @app.route('/u/<int:id>', methods=['GET', 'POST'])
    fastapi-routes     @app.get('/items/{item_id}')
    laravel-routes     Route::get('/users/{id}', [UserController::class, 'show'])
    rails-routes       get '/users/:id', to: 'users#show'; resources :articles
"""

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional

from goport.modernization.naming import pascal_case, split_words

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

# Conventional REST actions: (action, method, suffix)
_LARAVEL_RESOURCE = [
    ("index", "GET", ""),
    ("create", "GET", "/create"),
    ("store", "POST", ""),
    ("show", "GET", "/:{param}"),
    ("edit", "GET", "/:{param}/edit"),
    ("update", "PUT", "/:{param}"),
    ("destroy", "DELETE", "/:{param}"),
]
_RAILS_RESOURCE = [
    ("index", "GET", ""),
    ("new", "GET", "/new"),
    ("create", "POST", ""),
    ("show", "GET", "/:id"),
    ("edit", "GET", "/:id/edit"),
    ("update", "PUT", "/:id"),
    ("destroy", "DELETE", "/:id"),
]


@dataclass(frozen=True)
class Route:
    method: str  # GET/POST/... or ANY
    path: str
    handler: str


@dataclass
class RouteTable:
    """Routes extracted from one source file plus anything left unhandled."""

    source: str
    routes: List[Route] = field(default_factory=list)
    review_items: List[str] = field(default_factory=list)

    def add(self, method, path, handler):
        route = Route(method=method.upper(), path=normalize_path(path), handler=handler)
        if route not in self.routes:
            self.routes.append(route)

    def review(self, lineno, text, why="unrecognized routing construct"):
        self.review_items.append(f"{self.source}:{lineno}: {why}: {text.strip()[:120]}")

    @property
    def handlers(self):
        seen = []
        for route in self.routes:
            if route.handler not in seen:
                seen.append(route.handler)
        return seen


def normalize_path(path):
    path = path.strip()
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = re.sub(r"/{2,}", "/", path)
    return path


def derive_handler_name(method, path):
    """Handler name from method + path ("GET", "/users/:id" -> "GetUsersID")."""
    words = split_words(path) or ["root"]
    return pascal_case("_".join([method.lower()] + words))


# ---------------------------------------------------------------------------
# Express
# ---------------------------------------------------------------------------

_EXPRESS_RE = re.compile(
    r"\b(?:app|router)\.(get|post|put|patch|delete|all)\s*\(\s*(['\"`])([^'\"`]+)\2\s*(?:,\s*([^)]*))?"
)
_EXPRESS_HINT_RE = re.compile(r"\b(?:app|router)\.(?:route|use)\s*\(")


def _express_handler(method, path, args):
    if args:
        last = args.split(",")[-1].strip()
        if "(" not in args and "=>" not in args and re.match(r"^[\w.$]+$", last):
            return pascal_case(last.split(".")[-1])
    return derive_handler_name(method, path)


def transform_express(content, source):
    table = RouteTable(source=source)
    for lineno, line in enumerate(content.splitlines(), start=1):
        match = _EXPRESS_RE.search(line)
        if match:
            method, _q, path, args = match.groups()
            method = "ANY" if method == "all" else method
            table.add(method, path, _express_handler(method, path, args))
            continue
        if _EXPRESS_HINT_RE.search(line):
            table.review(lineno, line, "router mount or chained route")
    return table


# ---------------------------------------------------------------------------
# Next.js
# ---------------------------------------------------------------------------

_NEXT_SEGMENT_RE = re.compile(r"^\[(\.\.\.)?(\w+)\]$")
_NEXT_EXPORT_RE = re.compile(r"export\s+(?:async\s+)?function\s+(GET|POST|PUT|PATCH|DELETE)\b")
_NEXT_METHOD_RE = re.compile(r"req\.method\s*===?\s*['\"](GET|POST|PUT|PATCH|DELETE)['\"]")


def _next_route_path(parts):
    segments = []
    for part in parts:
        if part.startswith("(") and part.endswith(")"):
            continue  # route group
        match = _NEXT_SEGMENT_RE.match(part)
        if match:
            segments.append("*" if match.group(1) else f":{match.group(2)}")
        elif part != "index":
            segments.append(part)
    return "/" + "/".join(segments)


def transform_nextjs_api(content, source):
    table = RouteTable(source=source)
    parts = list(PurePosixPath(source).with_suffix("").parts)
    if "pages" in parts:
        parts = parts[parts.index("pages") + 1:]
    path = _next_route_path(parts)
    methods = sorted(set(_NEXT_METHOD_RE.findall(content)), key=HTTP_METHODS.index)
    for method in methods or ["ANY"]:
        table.add(method, path, derive_handler_name(method if methods else "handle", path))
    return table


def transform_nextjs_app(content, source):
    table = RouteTable(source=source)
    parts = list(PurePosixPath(source).parent.parts)
    if "app" in parts:
        parts = parts[parts.index("app") + 1:]
    path = _next_route_path(parts)
    methods = _NEXT_EXPORT_RE.findall(content)
    if not methods:
        table.review(1, source, "route module exports no HTTP method handlers")
    for method in methods:
        table.add(method, path, derive_handler_name(method, path))
    return table


# ---------------------------------------------------------------------------
# Django
# ---------------------------------------------------------------------------

_DJANGO_PATH_RE = re.compile(r"\bpath\(\s*r?['\"]([^'\"]*)['\"]\s*,\s*([\w.]+(?:\.as_view\(\))?)")
_DJANGO_HINT_RE = re.compile(r"\b(?:re_path|url|include)\(")
_DJANGO_CONVERTER_RE = re.compile(r"<(?:\w+:)?(\w+)>")


def transform_django(content, source):
    table = RouteTable(source=source)
    for lineno, line in enumerate(content.splitlines(), start=1):
        match = _DJANGO_PATH_RE.search(line)
        if match and "include(" not in line and not match.group(2).endswith(".urls"):
            route, view = match.groups()
            view = view.replace(".as_view()", "")
            path = _DJANGO_CONVERTER_RE.sub(r":\1", route)
            table.add("ANY", path, pascal_case(view.split(".")[-1]))
            continue
        if match or _DJANGO_HINT_RE.search(line):
            table.review(lineno, line, "regex route or included urlconf")
    return table


# ---------------------------------------------------------------------------
# Flask / FastAPI
# ---------------------------------------------------------------------------

_FLASK_ROUTE_RE = re.compile(r"^\s*@\w+\.route\(\s*['\"]([^'\"]+)['\"](.*)\)\s*$")
_DECORATOR_VERB_RE = re.compile(r"^\s*@\w+\.(get|post|put|patch|delete)\(\s*['\"]([^'\"]*)['\"]")
_DEF_RE = re.compile(r"^\s*(?:async\s+)?def\s+(\w+)\s*\(")
_METHODS_ARG_RE = re.compile(r"methods\s*=\s*[\[(]([^\])]*)[\])]")
_FLASK_CONVERTER_RE = re.compile(r"<(?:\w+:)?(\w+)>")
_FASTAPI_PARAM_RE = re.compile(r"\{(\w+)(?::\w+)?\}")


def _decorated_routes(content, source, collect):
    """Pair route decorators with the function they decorate."""
    table = RouteTable(source=source)
    pending = []
    for lineno, line in enumerate(content.splitlines(), start=1):
        found = collect(line)
        if found is not None:
            pending.extend((lineno, m, p) for m, p in found)
            continue
        match = _DEF_RE.match(line)
        if match and pending:
            for _lineno, method, path in pending:
                table.add(method, path, pascal_case(match.group(1)))
            pending = []
        elif pending and line.strip() and not line.strip().startswith("@"):
            for p_lineno, _m, p_path in pending:
                table.review(p_lineno, p_path, "route decorator without a function")
            pending = []
    return table


def transform_flask(content, source):
    def collect(line):
        match = _FLASK_ROUTE_RE.match(line)
        if match:
            path = _FLASK_CONVERTER_RE.sub(r":\1", match.group(1))
            methods = ["GET"]
            m_arg = _METHODS_ARG_RE.search(match.group(2))
            if m_arg:
                methods = [m.strip(" '\"").upper() for m in m_arg.group(1).split(",") if m.strip(" '\"")]
            return [(m, path) for m in methods]
        match = _DECORATOR_VERB_RE.match(line)
        if match:
            return [(match.group(1), _FLASK_CONVERTER_RE.sub(r":\1", match.group(2)))]
        return None

    return _decorated_routes(content, source, collect)


def transform_fastapi(content, source):
    def collect(line):
        match = _DECORATOR_VERB_RE.match(line)
        if match:
            return [(match.group(1), _FASTAPI_PARAM_RE.sub(r":\1", match.group(2)))]
        return None

    return _decorated_routes(content, source, collect)


# ---------------------------------------------------------------------------
# Laravel
# ---------------------------------------------------------------------------

_LARAVEL_ROUTE_RE = re.compile(
    r"Route::(get|post|put|patch|delete|any)\(\s*['\"]([^'\"]*)['\"]\s*,\s*(.+?)\)\s*(?:->[^;]*)?;"
)
_LARAVEL_ARRAY_RE = re.compile(r"\[\s*([\w\\]+)::class\s*,\s*['\"](\w+)['\"]\s*\]")
_LARAVEL_STRING_RE = re.compile(r"['\"]([\w\\]+)@(\w+)['\"]")
_LARAVEL_RESOURCE_RE = re.compile(r"Route::(?:api)?[Rr]esource\(\s*['\"]([\w.\-/]+)['\"]\s*,\s*([\w\\]+)::class")
_LARAVEL_PARAM_RE = re.compile(r"\{(\w+)\}")
_LARAVEL_HINT_RE = re.compile(r"Route::")


def _controller_handler(controller, action):
    base = controller.split("\\")[-1]
    if base.endswith("Controller"):
        base = base[: -len("Controller")]
    return pascal_case(f"{base}_{action}")


def transform_laravel(content, source):
    table = RouteTable(source=source)
    for lineno, line in enumerate(content.splitlines(), start=1):
        match = _LARAVEL_ROUTE_RE.search(line)
        if match and "?}" not in match.group(2):
            method, uri, target = match.groups()
            path = _LARAVEL_PARAM_RE.sub(r":\1", uri)
            arr = _LARAVEL_ARRAY_RE.search(target)
            string = _LARAVEL_STRING_RE.search(target)
            if arr:
                handler = _controller_handler(*arr.groups())
            elif string:
                handler = _controller_handler(*string.groups())
            else:
                handler = derive_handler_name(method, path)
            table.add("ANY" if method == "any" else method, path, handler)
            continue
        match = _LARAVEL_RESOURCE_RE.search(line)
        if match:
            name, controller = match.groups()
            param = re.sub(r"s$", "", name.split("/")[-1].replace("-", "_")) or "id"
            for action, method, suffix in _LARAVEL_RESOURCE:
                table.add(method, "/" + name + suffix.format(param=param),
                          _controller_handler(controller, action))
            continue
        if _LARAVEL_HINT_RE.search(line):
            table.review(lineno, line, "route group, optional parameter or closure chain")
    return table


# ---------------------------------------------------------------------------
# Rails
# ---------------------------------------------------------------------------

_RAILS_VERB_RE = re.compile(
    r"^\s*(get|post|put|patch|delete)\s+['\"]([^'\"]+)['\"]\s*(?:,\s*to:\s*|=>\s*)['\"](\w+)#(\w+)['\"]"
)
_RAILS_ROOT_RE = re.compile(r"^\s*root\s+(?:to:\s*)?['\"](\w+)#(\w+)['\"]")
_RAILS_RESOURCES_RE = re.compile(r"^\s*resources?\s+:(\w+)(?:\s*,\s*only:\s*\[([^\]]*)\])?\s*$")
_RAILS_HINT_RE = re.compile(r"^\s*(namespace|scope|resources?|match|constraints|concern|mount)\b")


def transform_rails(content, source):
    table = RouteTable(source=source)
    for lineno, line in enumerate(content.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or stripped in ("end", "Rails.application.routes.draw do"):
            continue
        match = _RAILS_VERB_RE.match(line)
        if match:
            method, path, controller, action = match.groups()
            table.add(method, path, pascal_case(f"{controller}_{action}"))
            continue
        match = _RAILS_ROOT_RE.match(line)
        if match:
            table.add("GET", "/", pascal_case("_".join(match.groups())))
            continue
        match = _RAILS_RESOURCES_RE.match(line)
        if match:
            name, only = match.groups()
            allowed = None
            if only:
                allowed = {a.strip().lstrip(":") for a in only.split(",") if a.strip()}
            for action, method, suffix in _RAILS_RESOURCE:
                if allowed is None or action in allowed:
                    table.add(method, "/" + name + suffix, pascal_case(f"{name}_{action}"))
            continue
        if _RAILS_HINT_RE.match(line) or " do" in line:
            table.review(lineno, line, "nested routing block")
    return table


ROUTE_TRANSFORMS: Dict[str, Callable[[str, str], RouteTable]] = {
    "express-routes": transform_express,
    "nextjs-api-route": transform_nextjs_api,
    "nextjs-app-route": transform_nextjs_app,
    "django-urls": transform_django,
    "flask-routes": transform_flask,
    "fastapi-routes": transform_fastapi,
    "laravel-routes": transform_laravel,
    "rails-routes": transform_rails,
}


def transform_routes(transform, content, source) -> Optional[RouteTable]:
    """Run a named route transform. Returns None for unknown transform names."""
    func = ROUTE_TRANSFORMS.get(transform)
    if func is None:
        return None
    return func(content, source)


def route_group_name(source):
    """Go identifier for the routes of one source file ("routes/users.js" -> "RoutesUsers")."""
    path = PurePosixPath(source)
    parts = [p for p in path.with_suffix("").parts if p not in ("src", "app", "config", "pages")]
    if path.name in ("route.ts", "route.js"):
        parts = [p for p in path.parent.parts if p not in ("src", "app")]
    joined = "_".join(p.strip("[]().") for p in parts)
    # app.js, src/app.js, app/route.ts
    if not split_words(joined):
        return "Routes"
    return pascal_case(joined)
