#!/usr/bin/env python3
# CUI // SP-CTI
"""View template transforms: Django/Jinja, ERB, EJS and Blade -> templ.

Only the common constructs are translated: output expressions, for-each
loops, if/elif/else blocks, comments and static asset tags. Everything
else (inheritance, includes, helpers, filters, multi-level attribute
access) is replaced by an HTML comment marker and reported as a
manual-review item.

Values referenced by a template become parameters of the generated templ
component: plain names are ``string``, single-level attribute access makes
the root a ``map[string]string`` and loop iterables become
``[]map[string]string``.
"""

import json
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Callable, Dict, List, Optional

from goport.modernization.naming import pascal_case, snake_case, split_words

REVIEW_MARKER = "TODO(goport): manual review"

_VIEW_ROOTS = ("resources/views/", "app/views/", "views/")
_TEMPLATE_SUFFIXES = (".blade.php", ".html.erb", ".erb", ".ejs", ".html", ".jinja", ".j2",
                      ".hbs", ".handlebars", ".pug", ".jsx", ".tsx")

_IDENT_REF_RE = re.compile(r"^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$")
_STRING_RE = re.compile(r"""^(['"])(.*)\1$""")

_GO_KEYWORDS = {
    "break", "case", "chan", "const", "continue", "default", "defer", "else",
    "fallthrough", "for", "func", "go", "goto", "if", "import", "interface",
    "map", "package", "range", "return", "select", "struct", "switch", "type", "var",
}


@dataclass
class TemplateResult:
    component: str
    source: str
    body: str
    params: "OrderedDict[str, str]" = field(default_factory=OrderedDict)
    review_items: List[str] = field(default_factory=list)

    @property
    def signature(self):
        return ", ".join(f"{name} {go_type}" for name, go_type in self.params.items())


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------

def _view_relative(source):
    rel = source
    if "/templates/" in "/" + rel:
        rel = ("/" + rel).split("/templates/", 1)[1]
    else:
        for root in _VIEW_ROOTS:
            if root in rel:
                rel = rel.split(root, 1)[1]
                break
    for suffix in _TEMPLATE_SUFFIXES:
        if rel.endswith(suffix):
            rel = rel[: -len(suffix)]
            break
    return rel


def component_name(source):
    """templ component name for a view ("app/views/users/show.html.erb" -> "UsersShow")."""
    rel = _view_relative(source)
    parts = [p for p in PurePosixPath(rel).parts if p not in ("pages", "app", "src")]
    joined = "_".join(parts)
    return pascal_case(joined) if split_words(joined) else "Page"


def template_destination(source):
    return f"templates/{snake_case(component_name(source))}.templ"


def destination_component(destination):
    """Component declared by a ``.templ`` file ("templates/home_2.templ" -> "Home2").

    Destinations are unique within a plan, so names derived from them never
    collide with each other or with the built-in Layout/Home/Admin components.
    """
    return pascal_case(PurePosixPath(destination).stem)


def _go_ident(name):
    return name + "Value" if name in _GO_KEYWORDS else name


def _marker(text):
    cleaned = text.replace("--", "- -").replace("{", "(").replace("}", ")")
    return f"<!-- {REVIEW_MARKER}: {cleaned.strip()[:160]} -->"


# ---------------------------------------------------------------------------
# Translation context
# ---------------------------------------------------------------------------

class _Context:
    """Tracks parameters, loop variables, open blocks and review items."""

    def __init__(self, source):
        self.source = source
        self.params = OrderedDict()
        self.loop_vars = []
        self.stack = []
        self.review_items = []
        self.parts = []
        self._after_stmt = False
        self._brace_warned = False

    # -- output -------------------------------------------------------------
    def text(self, chunk):
        if self._after_stmt:
            chunk = re.sub(r"^[ \t]*\n", "", chunk, count=1)
            self._after_stmt = False
        self.parts.append(chunk)

    def stmt(self, line):
        buf = "".join(self.parts).rstrip(" \t")
        if buf and not buf.endswith("\n"):
            buf += "\n"
        self.parts = [buf, line, "\n"]
        self._after_stmt = True

    def review(self, construct, why):
        self.review_items.append(f"{self.source}: {why}: {construct.strip()[:120]}")
        self.text(_marker(f"{why}: {construct}"))

    # -- references ---------------------------------------------------------
    def use(self, name, go_type):
        if name in self.loop_vars:
            return
        rank = {"string": 0, "map[string]string": 1, "[]map[string]string": 2}
        current = self.params.get(name)
        if current is None or rank[go_type] > rank[current]:
            self.params[name] = go_type

    def ref(self, expr):
        """Translate a value reference to Go; None when it is not a simple reference."""
        expr = expr.strip()
        literal = _STRING_RE.match(expr)
        if literal:
            return json.dumps(literal.group(2))
        if not _IDENT_REF_RE.match(expr):
            return None
        parts = expr.split(".")
        root = _go_ident(parts[0])
        if len(parts) == 1:
            self.use(root, "string")
            return root
        if len(parts) == 2:
            self.use(root, "map[string]string")
            return f'{root}["{parts[1]}"]'
        return None

    def cond(self, expr):
        expr = expr.strip()
        negate = False
        if expr.startswith("not "):
            negate, expr = True, expr[4:]
        elif expr.startswith("!"):
            negate, expr = True, expr[1:]
        ref = self.ref(expr)
        if ref is None or ref.startswith('"'):
            return None
        name = ref.split("[", 1)[0]
        is_collection = name in self.loop_vars and "[" not in ref
        if self.params.get(name, "").startswith("[]") and "[" not in ref:
            is_collection = True
        if is_collection:
            return f"len({ref}) {'==' if negate else '!='} 0"
        return f'{ref} {"==" if negate else "!="} ""'

    # -- blocks -------------------------------------------------------------
    def open_for(self, var, iterable, construct):
        iterable = iterable.strip()
        if not re.match(r"^[A-Za-z_]\w*$", iterable):
            self.review(construct, "loop over a computed expression")
            self.stack.append("skip")
            return
        name = _go_ident(iterable)
        if name not in self.loop_vars:
            self.use(name, "[]map[string]string")
        var = _go_ident(var)
        self.stmt(f"for _, {var} := range {name} {{")
        self.loop_vars.append(var)
        self.stack.append("for")

    def open_if(self, expr, construct, negate=False):
        go_cond = self.cond(("not " + expr) if negate else expr)
        if go_cond is None:
            self.stmt("if true {")
            self.review(construct, "condition needs manual translation")
        else:
            self.stmt(f"if {go_cond} {{")
        self.stack.append("if")

    def elif_(self, expr, construct):
        if not self.stack or self.stack[-1] != "if":
            self.review(construct, "elif without a translated if")
            return
        go_cond = self.cond(expr)
        if go_cond is None:
            self.stmt("} else if true {")
            self.review(construct, "condition needs manual translation")
        else:
            self.stmt(f"}} else if {go_cond} {{")

    def else_(self, construct):
        if not self.stack or self.stack[-1] not in ("if", "for"):
            self.review(construct, "else without a translated block")
            return
        if self.stack[-1] == "for":
            self.review(construct, "for-else/forelse empty branch")
            return
        self.stmt("} else {")

    def close(self, construct):
        if not self.stack:
            self.review(construct, "unmatched block end")
            return
        kind = self.stack.pop()
        if kind == "skip":
            return
        if kind == "for" and self.loop_vars:
            self.loop_vars.pop()
        self.stmt("}")

    def finish(self):
        while self.stack:
            kind = self.stack.pop()
            if kind != "skip":
                self.review_items.append(f"{self.source}: unclosed {kind} block closed automatically")
                self.stmt("}")
        body = "".join(self.parts)
        lines = [line.rstrip() for line in body.splitlines()]
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        return "\n".join(("\t" + line) if line.strip() else "" for line in lines)


# ---------------------------------------------------------------------------
# Expression handling shared by every dialect
# ---------------------------------------------------------------------------

def _emit_expr(ctx, expr, construct, raw=False):
    go = ctx.ref(expr)
    if go is None:
        ctx.review(construct, "expression needs manual translation")
    elif raw:
        ctx.text(f"@templ.Raw({go})")
    else:
        ctx.text(f"{{ {go} }}")


def _check_literal_braces(ctx, chunk):
    if ("{" in chunk or "}" in chunk) and not ctx._brace_warned:
        ctx._brace_warned = True
        ctx.review_items.append(
            f"{ctx.source}: literal braces in markup (inline script/style) need templ escaping"
        )


# ---------------------------------------------------------------------------
# Django / Jinja
# ---------------------------------------------------------------------------

_JINJA_TOKEN_RE = re.compile(
    r"(?P<comment>\{#.*?#\})"
    r"|(?P<expr>\{\{-?\s*(?P<expr_body>.*?)\s*-?\}\})"
    r"|(?P<stmt>\{%-?\s*(?P<stmt_body>.*?)\s*-?%\})",
    re.DOTALL,
)


def _jinja_expr(ctx, body, construct):
    parts = re.split(r"(?<!\|)\|(?!\|)", body)
    base = parts[0].strip()
    filters = [p.strip().split(":", 1)[0].split("(", 1)[0] for p in parts[1:]]
    raw = "safe" in filters
    dropped = [f for f in filters if f != "safe"]
    if dropped:
        ctx.review_items.append(f"{ctx.source}: filter(s) dropped: {', '.join(dropped)} in {construct.strip()}")
    _emit_expr(ctx, base, construct, raw=raw)


def _jinja_stmt(ctx, body, construct):
    match = re.match(r"for\s+(\w+)\s+in\s+(\S+)$", body)
    if match:
        ctx.open_for(match.group(1), match.group(2), construct)
        return
    if re.match(r"for\s", body):
        ctx.review(construct, "loop needs manual translation")
        ctx.stack.append("skip")
        return
    keyword = body.split(None, 1)[0] if body else ""
    rest = body[len(keyword):].strip()
    if keyword == "if":
        ctx.open_if(rest, construct)
    elif keyword == "elif":
        ctx.elif_(rest, construct)
    elif keyword == "else":
        ctx.else_(construct)
    elif keyword in ("endfor", "endif"):
        ctx.close(construct)
    elif keyword == "empty":
        ctx.else_(construct)
    elif keyword in ("load", "endblock", "endwith", "endspaceless"):
        return
    elif keyword == "static":
        ref = _STRING_RE.match(rest)
        if ref:
            ctx.text("/static/" + ref.group(2))
        else:
            ctx.review(construct, "dynamic static path")
    elif keyword == "csrf_token":
        ctx.review(construct, "add the CSRF middleware token field")
    elif keyword in ("extends", "block", "include"):
        ctx.review(construct, "template inheritance/include; compose templ components instead")
    else:
        ctx.review(construct, "unsupported template tag")


# ---------------------------------------------------------------------------
# ERB / EJS
# ---------------------------------------------------------------------------

_ERB_TOKEN_RE = re.compile(
    r"(?P<comment><%#.*?%>)"
    r"|(?P<raw><%==\s*(?P<raw_body>.*?)\s*-?%>)"
    r"|(?P<expr><%=\s*(?P<expr_body>.*?)\s*-?%>)"
    r"|(?P<stmt><%-?\s*(?P<stmt_body>.*?)\s*-?%>)",
    re.DOTALL,
)

_EJS_TOKEN_RE = re.compile(
    r"(?P<comment><%#.*?%>)"
    r"|(?P<raw><%-\s*(?P<raw_body>.*?)\s*[-_]?%>)"
    r"|(?P<expr><%=\s*(?P<expr_body>.*?)\s*[-_]?%>)"
    r"|(?P<stmt><%_?\s*(?P<stmt_body>.*?)\s*[-_]?%>)",
    re.DOTALL,
)


def _erb_expr(ctx, body, construct, raw=False):
    body = body.strip()
    if body.startswith("raw(") and body.endswith(")"):
        body, raw = body[4:-1], True
    elif body.endswith(".html_safe"):
        body, raw = body[: -len(".html_safe")], True
    if body.startswith("render"):
        ctx.review(construct, "partial render; call the templ component instead")
        return
    _emit_expr(ctx, body.lstrip("@"), construct, raw=raw)


def _erb_stmt(ctx, body, construct):
    body = body.strip()
    match = re.match(r"@?(\w+)\.each\s+do\s*\|\s*(\w+)\s*\|$", body)
    if match:
        ctx.open_for(match.group(2), match.group(1), construct)
        return
    match = re.match(r"(if|unless|elsif)\s+(.+)$", body)
    if match:
        keyword, expr = match.groups()
        expr = expr.strip().lstrip("@").replace("!@", "!")
        if keyword == "elsif":
            ctx.elif_(expr, construct)
        else:
            ctx.open_if(expr, construct, negate=keyword == "unless")
        return
    if body == "else":
        ctx.else_(construct)
    elif body == "end":
        ctx.close(construct)
    elif re.search(r"\bdo(\s*\|[^|]*\|)?$", body):
        ctx.review(construct, "block helper needs manual translation")
        ctx.stack.append("skip")
    else:
        ctx.review(construct, "Ruby statement needs manual translation")


def _ejs_expr(ctx, body, construct, raw=False):
    if body.strip().startswith("include"):
        ctx.review(construct, "partial include; call the templ component instead")
        return
    _emit_expr(ctx, body, construct, raw=raw)


def _ejs_stmt(ctx, body, construct):
    body = body.strip()
    match = re.match(r"(\w+)\.forEach\(\s*(?:function\s*)?\(?\s*(\w+)\s*\)?\s*(?:=>)?\s*\{$", body)
    if not match:
        match = re.match(r"for\s*\(\s*(?:const|let|var)\s+(\w+)\s+of\s+(\w+)\s*\)\s*\{$", body)
        if match:
            ctx.open_for(match.group(1), match.group(2), construct)
            return
    else:
        ctx.open_for(match.group(2), match.group(1), construct)
        return
    match = re.match(r"\}\s*else\s+if\s*\((.+)\)\s*\{$", body)
    if match:
        ctx.elif_(match.group(1), construct)
        return
    if re.match(r"\}\s*else\s*\{$", body):
        ctx.else_(construct)
        return
    match = re.match(r"if\s*\((.+)\)\s*\{$", body)
    if match:
        ctx.open_if(match.group(1), construct)
        return
    if re.match(r"^\}\s*\)?\s*;?$", body):
        ctx.close(construct)
        return
    if body.endswith("{"):
        ctx.review(construct, "JavaScript block needs manual translation")
        ctx.stack.append("skip")
    else:
        ctx.review(construct, "JavaScript statement needs manual translation")


# ---------------------------------------------------------------------------
# Blade
# ---------------------------------------------------------------------------

_BLADE_DIRECTIVES = (
    "foreach|forelse|empty|if|elseif|else|endif|endforeach|endforelse|unless|endunless|"
    "extends|section|endsection|yield|include|csrf|method|push|endpush|stack|"
    "auth|endauth|guest|endguest|php|endphp"
)
_BLADE_TOKEN_RE = re.compile(
    r"(?P<comment>\{\{--.*?--\}\})"
    r"|(?P<raw>\{!!\s*(?P<raw_body>.*?)\s*!!\})"
    r"|(?P<expr>\{\{\s*(?P<expr_body>.*?)\s*\}\})"
    r"|(?P<stmt>(?<![\w@])@(?P<stmt_body>(?:" + _BLADE_DIRECTIVES + r")\b"
    r"(?:\s*\((?:[^()]|\([^()]*\))*\))?))",
    re.DOTALL,
)


def _php_to_ref(expr):
    return expr.strip().replace("->", ".").replace("$", "")


def _blade_expr(ctx, body, construct, raw=False):
    _emit_expr(ctx, _php_to_ref(body), construct, raw=raw)


def _blade_stmt(ctx, body, construct):
    match = re.match(r"(\w+)\s*(?:\((.*)\))?$", body.strip(), re.DOTALL)
    directive, args = match.group(1), (match.group(2) or "").strip()
    if directive in ("foreach", "forelse"):
        loop = re.match(r"\$([\w]+)\s+as\s+(?:\$\w+\s*=>\s*)?\$(\w+)$", args)
        if loop:
            ctx.open_for(loop.group(2), loop.group(1), construct)
        else:
            ctx.review(construct, "loop needs manual translation")
            ctx.stack.append("skip")
    elif directive in ("if", "unless"):
        ctx.open_if(_php_to_ref(args), construct, negate=directive == "unless")
    elif directive == "elseif":
        ctx.elif_(_php_to_ref(args), construct)
    elif directive in ("else", "empty"):
        ctx.else_(construct)
    elif directive in ("endif", "endforeach", "endforelse", "endunless", "endauth", "endguest"):
        ctx.close(construct)
    elif directive in ("auth", "guest"):
        ctx.review(construct, "authentication guard; check the session in the handler")
        ctx.stack.append("skip")
    elif directive in ("endsection", "endpush", "endphp"):
        return
    elif directive == "csrf":
        ctx.review(construct, "add the CSRF middleware token field")
    elif directive == "method":
        ctx.review(construct, "method spoofing field; use hx-put/hx-delete instead")
    else:
        ctx.review(construct, "layout directive; compose templ components instead")


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

_DIALECTS = {
    "jinja-template": (_JINJA_TOKEN_RE, _jinja_expr, None, _jinja_stmt),
    "erb-template": (_ERB_TOKEN_RE, _erb_expr, lambda c, b, s: _erb_expr(c, b, s, raw=True), _erb_stmt),
    "ejs-template": (_EJS_TOKEN_RE, _ejs_expr, lambda c, b, s: _ejs_expr(c, b, s, raw=True), _ejs_stmt),
    "blade-template": (_BLADE_TOKEN_RE, _blade_expr, lambda c, b, s: _blade_expr(c, b, s, raw=True), _blade_stmt),
}


def _translate(content, source, dialect) -> TemplateResult:
    token_re, on_expr, on_raw, on_stmt = _DIALECTS[dialect]
    ctx = _Context(source)
    pos = 0
    for match in token_re.finditer(content):
        chunk = content[pos:match.start()]
        _check_literal_braces(ctx, chunk)
        ctx.text(chunk)
        pos = match.end()
        construct = match.group(0)
        if match.group("comment"):
            continue
        if "raw" in match.groupdict() and match.group("raw"):
            on_raw(ctx, match.group("raw_body"), construct)
        elif match.group("expr"):
            on_expr(ctx, match.group("expr_body"), construct)
        else:
            on_stmt(ctx, match.group("stmt_body"), construct)
    tail = content[pos:]
    _check_literal_braces(ctx, tail)
    ctx.text(tail)
    body = ctx.finish()
    return TemplateResult(
        component=component_name(source),
        source=source,
        body=body,
        params=ctx.params,
        review_items=ctx.review_items,
    )


def transform_unsupported(content, source) -> TemplateResult:
    component = component_name(source)
    why = f"{source} uses a template language goport does not translate"
    return TemplateResult(
        component=component,
        source=source,
        body="\t<div>\n\t\t" + _marker(why) + "\n\t</div>",
        review_items=[f"{source}: {why}; rewrite as a templ component"],
    )


TEMPLATE_TRANSFORMS: Dict[str, Callable[[str, str], TemplateResult]] = {
    name: (lambda d: (lambda content, source: _translate(content, source, d)))(name)
    for name in _DIALECTS
}
TEMPLATE_TRANSFORMS["unsupported-template"] = transform_unsupported


def transform_template(transform, content, source) -> Optional[TemplateResult]:
    """Run a named template transform. Returns None for unknown transform names."""
    func = TEMPLATE_TRANSFORMS.get(transform)
    if func is None:
        return None
    return func(content, source)
