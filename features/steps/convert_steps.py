# CUI // SP-CTI
"""Step definitions for goport conversion BDD scenarios."""

import json
import os
import subprocess
import sys

from behave import given, then, when

SAMPLE_MANIFESTS = {
    "express": ("package.json", json.dumps({"dependencies": {"express": "^4.19.2", "pg": "^8.11.0"}})),
    "django": ("requirements.txt", "Django==4.2.7\npsycopg2-binary==2.9.9\n"),
    "rails": ("Gemfile", "source 'https://rubygems.org'\ngem 'rails', '~> 7.1'\ngem 'sqlite3'\n"),
    "laravel": ("composer.json", json.dumps({"require": {"laravel/framework": "^10.0"}})),
}


def _write(context, rel, content):
    path = os.path.join(context.project_dir, rel)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(content)


def _run_goport(context, *extra):
    result = subprocess.run(
        [sys.executable, '-m', 'goport', context.project_dir, *extra],
        capture_output=True, text=True, timeout=60, cwd=context.project_root,
    )
    context.result = result
    return result


@given('a {framework} project')
def step_sample_project(context, framework):
    """Write a minimal manifest for the framework."""
    manifest, content = SAMPLE_MANIFESTS[framework]
    _write(context, manifest, content)


@given('an empty project directory')
def step_empty_project(context):
    """Nothing to write: before_scenario created the directory."""
    context.empty = True


@given('the project has a file "{rel}" containing "{content}"')
def step_project_file(context, rel, content):
    _write(context, rel, content.replace("\\n", "\n"))


@given('the project already has a go.mod')
def step_existing_go_mod(context):
    _write(context, "go.mod", "module example.com/existing\n\ngo 1.22\n")


@when('I run goport with "{flags}"')
def step_run_goport(context, flags):
    """Run the CLI as a subprocess with space-separated flags."""
    _run_goport(context, *flags.split())


def _snapshot(project_dir):
    files = {}
    for dirpath, _dirs, names in os.walk(project_dir):
        for name in names:
            path = os.path.join(dirpath, name)
            with open(path, "rb") as fh:
                files[os.path.relpath(path, project_dir)] = fh.read()
    return files


@when('I delete the file "{rel}"')
def step_delete_file(context, rel):
    os.remove(os.path.join(context.project_dir, rel))


@when('I run goport again with "{flags}"')
def step_run_goport_again(context, flags):
    """Snapshot the tree produced so far, then run the CLI a second time."""
    context.first_result = context.result
    context.snapshot = _snapshot(context.project_dir)
    _run_goport(context, *flags.split())


@then('the exit code should be {code:d}')
def step_exit_code(context, code):
    assert context.result.returncode == code, (
        f"Expected {code}, got {context.result.returncode}: {context.result.stderr}"
    )


@then('the file "{rel}" should exist')
def step_file_exists(context, rel):
    assert os.path.isfile(os.path.join(context.project_dir, rel)), f"{rel} was not written"


@then('the file "{rel}" should not exist')
def step_file_absent(context, rel):
    assert not os.path.exists(os.path.join(context.project_dir, rel)), f"{rel} should not exist"


@then('the file "{rel}" should contain "{text}"')
def step_file_contains(context, rel, text):
    with open(os.path.join(context.project_dir, rel), encoding="utf-8") as fh:
        content = fh.read()
    assert text in content, f"{text!r} not found in {rel}"


@then('the file "{rel}" should still contain "{text}"')
def step_file_unchanged(context, rel, text):
    step_file_contains(context, rel, text)


@then('the output should contain "{text}"')
def step_output_contains(context, text):
    output = context.result.stdout + context.result.stderr
    assert text in output, f"{text!r} not in output:\n{output}"


@then('the JSON status should be "{status}"')
def step_json_status(context, status):
    payload = json.loads(context.result.stdout)
    assert payload["status"] == status, payload


@then('no file should have changed since the first run')
def step_nothing_overwritten(context):
    current = _snapshot(context.project_dir)
    for rel, content in context.snapshot.items():
        if rel == "GOPORT_REPORT.md":
            continue
        assert current.get(rel) == content, f"{rel} was modified by the second run"


@then('the JSON summary should report {count:d} created files')
def step_json_created(context, count):
    payload = json.loads(context.result.stdout)
    assert payload["summary"]["counts"]["created"] == count, payload["summary"]["counts"]


@then('the project directory should be unchanged apart from the manifest')
def step_directory_untouched(context):
    entries = sorted(os.listdir(context.project_dir))
    assert len(entries) == 1, entries


@then('the file "{rel}" should not contain "{text}"')
def step_file_lacks(context, rel, text):
    with open(os.path.join(context.project_dir, rel), encoding="utf-8") as fh:
        assert text not in fh.read(), f"{text!r} unexpectedly found in {rel}"
