from __future__ import annotations

import os
import time

import pytest
from markupsafe import Markup

from ada.compiler import compile_template
from ada.exceptions import TemplateError, TemplateNotFound, TemplateSyntaxError
from ada.view import View, _RenderState


def _write(root, name, source):
    path = root.joinpath(*name.split("/"))
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source, encoding="utf-8")
    return path


@pytest.fixture
def templates(tmp_path):
    return tmp_path / "templates"


@pytest.fixture
def view(tmp_path, templates):
    templates.mkdir()
    return View(templates, cache_path=tmp_path / "cache")


# -------------------------------------------------------------------
# Compilation
# -------------------------------------------------------------------
class TestCompiler:

    def test_echo_is_escaped_and_raw_is_not(self):
        code = compile_template("Hello {{ name }} {!! html !!}", "greet")
        assert code.startswith("# compiled template: greet")
        assert "__echo(__escape(name))" in code
        assert "__echo(__raw(html))" in code

    def test_comment_is_dropped(self):
        code = compile_template("a{{-- secret --}}b")
        assert "secret" not in code

    def test_unclosed_block_reports_line(self):
        with pytest.raises(TemplateSyntaxError) as exc:
            compile_template("line one\n@if(x)\nyes\n", "broken")
        assert exc.value.lineno == 2
        assert exc.value.template == "broken"
        assert "@endif" in str(exc.value)

    def test_mismatched_closing_directive(self):
        with pytest.raises(TemplateSyntaxError):
            compile_template("@foreach(x in xs)\n{{ x }}\n@endif\n")

    def test_closing_without_opening(self):
        with pytest.raises(TemplateSyntaxError):
            compile_template("@endsection")

    def test_invalid_expression(self):
        with pytest.raises(TemplateSyntaxError) as exc:
            compile_template("ok\n{{ 1 + }}")
        assert exc.value.lineno == 2

    def test_directive_requires_arguments(self):
        with pytest.raises(TemplateSyntaxError):
            compile_template("@if\nx\n@endif")

    def test_extends_takes_one_argument(self):
        with pytest.raises(TemplateSyntaxError):
            compile_template("@extends('a', 'b')")

    def test_else_outside_if(self):
        with pytest.raises(TemplateSyntaxError):
            compile_template("@foreach(x in xs)@else@endforeach")

    @pytest.mark.parametrize("second", ["@else", "@elseif(y)"])
    def test_branch_after_else(self, second):
        source = f"@if(x)\na\n@else\nb\n{second}\nc\n@endif"
        with pytest.raises(TemplateSyntaxError) as exc:
            compile_template(source, "branches")
        assert exc.value.lineno == 5
        assert "after @else (line 3)" in str(exc.value)

    def test_nested_if_inside_else(self, view, templates):
        _write(
            templates, "nested.html",
            "@if(a)\nA\n@else\n@if(b)\nB\n@else\nC\n@endif\n@endif\n",
        )
        assert view.render("nested", {"a": False, "b": False}) == "C\n"
        assert view.render("nested", {"a": False, "b": True}) == "B\n"
        assert view.render("nested", {"a": True, "b": True}) == "A\n"

    def test_bad_loop_syntax(self):
        with pytest.raises(TemplateSyntaxError):
            compile_template("@foreach(xs)\n@endforeach")

    def test_unbalanced_parenthesis(self):
        with pytest.raises(TemplateSyntaxError):
            compile_template("@if((x)\n@endif")

    def test_generated_source_is_valid_python(self):
        code = compile_template(
            "@extends('layouts.main')\n"
            "@section('title', 'T')\n"
            "@section('content')\n"
            "@if(a)\n{{ a }}\n@elseif(b)\n{{ b }}\n@else\nnone\n@endif\n"
            "@foreach(i in items)\n@include('row', {'i': i})\n@endforeach\n"
            "@csrf\n"
            "@endsection\n"
        )
        compile(code, "<test>", "exec")


# -------------------------------------------------------------------
# Rendu
# -------------------------------------------------------------------
class TestRender:

    def test_escaping(self, view, templates):
        _write(templates, "page.html", "{{ value }}|{!! value !!}")
        out = view.render("page", {"value": "<b>&</b>"})
        assert out == "&lt;b&gt;&amp;&lt;/b&gt;|<b>&</b>"
        assert isinstance(out, Markup)

    def test_none_renders_empty(self, view, templates):
        _write(templates, "page.html", "[{{ value }}]")
        assert view.render("page", {"value": None}) == "[]"

    def test_conditionals(self, view, templates):
        _write(
            templates, "count.html",
            "@if(n > 1)\nmany\n@elseif(n == 1)\none\n@else\nnone\n@endif\n",
        )
        assert view.render("count", {"n": 3}) == "many\n"
        assert view.render("count", {"n": 1}) == "one\n"
        assert view.render("count", {"n": 0}) == "none\n"

    def test_loops(self, view, templates):
        _write(templates, "list.html", "@foreach(x in items){{ x }},@endforeach")
        _write(templates, "range.html", "@for(i in range(3)){{ i }}@endfor")
        assert view.render("list", {"items": [1, 2, 3]}) == "1,2,3,"
        assert view.render("range") == "012"

    def test_at_escape_and_email_addresses(self, view, templates):
        _write(templates, "page.html", "@@if stays, mail ada@include.org")
        assert view.render("page") == "@if stays, mail ada@include.org"

    def test_get_reads_optional_variables(self, view, templates):
        _write(templates, "page.html", "{{ get('missing', 'fallback') }}/{{ get('here') }}")
        assert view.render("page", {"here": "yes"}) == "fallback/yes"

    def test_shared_helpers(self, view, templates):
        view.share("shout", lambda s: s.upper())
        view.share({"site": "ADA"})
        _write(templates, "page.html", "{{ shout(site) }}")
        assert view.render("page") == "ADA"

    def test_layout_sections(self, view, templates):
        _write(
            templates, "layouts/base.html",
            "<title>@yield('title', 'Default')</title><main>@yield('content')</main>",
        )
        _write(
            templates, "child.html",
            "@extends('layouts.base')\n"
            "ignored text\n"
            "@section('content')\n<p>{{ msg }}</p>\n@endsection\n",
        )
        out = view.render("child", {"msg": "hi"})
        assert out == "<title>Default</title><main><p>hi</p>\n</main>"

    def test_inline_section_is_escaped(self, view, templates):
        _write(templates, "base.html", "<title>@yield('title')</title>")
        _write(templates, "child.html", "@extends('base')\n@section('title', title)\n")
        assert view.render("child", {"title": "<x>"}) == "<title>&lt;x&gt;</title>"

    def test_first_section_definition_wins(self, view, templates):
        _write(
            templates, "base.html",
            "@section('sidebar')\nbase\n@endsection\n[@yield('sidebar')]",
        )
        _write(templates, "child.html", "@extends('base')\n@section('sidebar')child@endsection")
        assert view.render("child") == "[child]"

    def test_layout_chain(self, view, templates):
        _write(templates, "root.html", "<html>@yield('body')</html>")
        _write(
            templates, "mid.html",
            "@extends('root')\n@section('body')<nav/>@yield('content')@endsection\n",
        )
        _write(templates, "leaf.html", "@extends('mid')\n@section('content')leaf@endsection")
        assert view.render("leaf") == "<html><nav/>leaf</html>"

    def test_self_extending_template(self, view, templates):
        _write(templates, "loop.html", "@extends('loop')\nx")
        with pytest.raises(TemplateError, match="Circular @extends"):
            view.render("loop")

    def test_layouts_extending_each_other(self, view, templates):
        _write(templates, "a.html", "@extends('b')\na")
        _write(templates, "b.html", "@extends('a')\nb")
        _write(templates, "page.html", "@extends('a')\npage")
        with pytest.raises(TemplateError, match="Circular @extends: 'a'"):
            view.render("page")

    def test_include_receives_scope_and_data(self, view, templates):
        _write(templates, "partials/hi.html", "Hi {{ name }}{{ extra }}")
        _write(templates, "page.html", "@include('partials.hi', {'extra': '!'})")
        assert view.render("page", {"name": "Ada"}) == "Hi Ada!"

    def test_include_in_loop_sees_loop_variable(self, view, templates):
        _write(templates, "row.html", "<li>{{ item }}</li>")
        _write(templates, "list.html", "@foreach(item in items)@include('row')@endforeach")
        assert view.render("list", {"items": ["a", "b"]}) == "<li>a</li><li>b</li>"

    def test_missing_template(self, view):
        with pytest.raises(TemplateNotFound):
            view.render("nope")

    def test_parent_directory_is_rejected(self, view, templates):
        _write(templates, "page.html", "x")
        assert view.exists("page")
        with pytest.raises(TemplateNotFound):
            view.resolve("../page")

    def test_end_section_without_start(self):
        with pytest.raises(TemplateError):
            _RenderState().end_section()


# -------------------------------------------------------------------
# Cache des templates compilés
# -------------------------------------------------------------------
class TestCache:

    def test_compiled_file_is_written(self, view, templates, tmp_path):
        path = _write(templates, "page.html", "v1")
        view.render("page")
        cache_file = view.get_cache_file(path)
        assert cache_file.parent == tmp_path / "cache"
        assert cache_file.read_text(encoding="utf-8").startswith("# compiled template: page")

    def test_modified_template_is_recompiled(self, view, templates):
        path = _write(templates, "page.html", "v1")
        assert view.render("page") == "v1"

        path.write_text("v2", encoding="utf-8")
        future = time.time() + 60
        os.utime(path, (future, future))
        assert view.render("page") == "v2"

    def test_fresh_cache_is_reused(self, view, templates):
        _write(templates, "page.html", "v1")
        assert view.get_code("page") is view.get_code("page")

    def test_clear_cache(self, view, templates):
        _write(templates, "a.html", "a")
        _write(templates, "b.html", "b")
        view.render("a")
        view.render("b")
        assert view.clear_cache() == 2
        assert view.clear_cache() == 0

    def test_disabled_cache_writes_nothing(self, tmp_path, templates):
        _write(templates, "page.html", "{{ 1 + 1 }}")
        view = View(templates, cache_path=tmp_path / "cache", cache_enabled=False)
        assert view.render("page") == "2"
        assert not (tmp_path / "cache").exists()
