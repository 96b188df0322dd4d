# ada/view.py
# Rendu des templates compilés (layouts, sections, includes, cache disque)
from __future__ import annotations

import contextlib
import hashlib
import logging
import os
import tempfile
from pathlib import Path

from markupsafe import Markup, escape

from .compiler import compile_template
from .exceptions import TemplateError, TemplateNotFound, TemplateSyntaxError

_logger = logging.getLogger(__name__)


def _escape(value) -> str:
    if value is None:
        return ""
    return escape(value)


def _raw(value) -> str:
    return "" if value is None else str(value)


class _RenderState:
    """État d'un rendu : sections collectées, pile des sections ouvertes, layout."""

    def __init__(self):
        self.sections: dict[str, Markup] = {}
        self.section_stack: list[str] = []
        self.extends: str | None = None
        self.buffers: list[list[str]] = []

    def echo(self, text) -> None:
        self.buffers[-1].append(text)

    def extend(self, layout: str) -> None:
        self.extends = layout

    def start_section(self, name: str) -> None:
        self.section_stack.append(name)
        self.buffers.append([])

    def end_section(self) -> None:
        if not self.section_stack:
            raise TemplateError("Cannot end a section without first starting one.")
        name = self.section_stack.pop()
        content = "".join(self.buffers.pop())
        # la vue la plus « basse » (l'enfant) a le dernier mot
        self.sections.setdefault(name, Markup(content))

    def set_section(self, name: str, value) -> None:
        self.sections.setdefault(name, Markup(_escape(value)))

    def yield_section(self, name: str, default="") -> Markup:
        if name in self.sections:
            return self.sections[name]
        return Markup(_escape(default))


class View:
    """
    Moteur de vues. Les noms de templates sont « pointés » :
    'devoirs.show' → <path>/devoirs/show.html
    """

    def __init__(self, path, cache_path=None, cache_enabled: bool = True,
                 extension: str = ".html"):
        self.path = Path(path)
        self.cache_path = Path(cache_path) if cache_path else None
        self.cache_enabled = cache_enabled and self.cache_path is not None
        self.extension = extension
        self.shared: dict = {}
        # fichier compilé → (mtime, code object)
        self._code_cache: dict = {}

    def share(self, key, value=None) -> None:
        if isinstance(key, dict):
            self.shared.update(key)
        else:
            self.shared[key] = value

    # -------------------------------------------------------------------
    # Résolution / cache
    # -------------------------------------------------------------------
    def resolve(self, name: str) -> Path:
        rel = name
        if rel.endswith(self.extension):
            rel = rel[: -len(self.extension)]
        parts = [p for p in rel.replace("/", ".").split(".") if p]
        if not parts or ".." in rel or "~" in parts:
            raise TemplateNotFound(name)
        path = self.path.joinpath(*parts[:-1], parts[-1] + self.extension)
        if not path.is_file():
            raise TemplateNotFound(name)
        return path

    def exists(self, name: str) -> bool:
        try:
            self.resolve(name)
        except TemplateNotFound:
            return False
        return True

    def get_cache_file(self, path: Path) -> Path:
        key = hashlib.md5(str(path.resolve()).encode("utf-8")).hexdigest()
        return self.cache_path / f"{key}.py"

    def is_expired(self, path: Path, cache_file: Path) -> bool:
        if not cache_file.exists():
            return True
        return cache_file.stat().st_mtime < path.stat().st_mtime

    def _compile(self, source: str, name: str, filename: str):
        try:
            return compile(source, filename, "exec")
        except SyntaxError as e:
            raise TemplateSyntaxError(f"Compiled template is invalid: {e.msg}", name) from e

    def _write_cache(self, cache_file: Path, source: str) -> None:
        cache_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=cache_file.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(source)
            os.replace(tmp, cache_file)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp)
            raise

    def get_code(self, name: str):
        path = self.resolve(name)

        if not self.cache_enabled:
            source = compile_template(path.read_text(encoding="utf-8"), name)
            return self._compile(source, name, str(path))

        cache_file = self.get_cache_file(path)
        if self.is_expired(path, cache_file):
            _logger.debug("Compiling template %s", name)
            source = compile_template(path.read_text(encoding="utf-8"), name)
            self._write_cache(cache_file, source)
        else:
            source = None

        mtime = cache_file.stat().st_mtime
        if source is None:
            memo = self._code_cache.get(cache_file)
            if memo is not None and memo[0] == mtime:
                return memo[1]
            source = cache_file.read_text(encoding="utf-8")
        code = self._compile(source, name, str(cache_file))
        self._code_cache[cache_file] = (mtime, code)
        return code

    def clear_cache(self) -> int:
        self._code_cache.clear()
        if self.cache_path is None or not self.cache_path.is_dir():
            return 0
        count = 0
        for f in self.cache_path.glob("*.py"):
            with contextlib.suppress(FileNotFoundError):
                f.unlink()
                count += 1
        return count

    # -------------------------------------------------------------------
    # Rendu
    # -------------------------------------------------------------------
    def render(self, name: str, data: dict | None = None) -> Markup:
        data = dict(data or {})
        state = _RenderState()

        content = self._render_template(name, data, state)
        seen = {self.resolve(name)}
        while state.extends:
            layout, state.extends = state.extends, None
            path = self.resolve(layout)
            if path in seen:
                raise TemplateError(f"Circular @extends: '{layout}' in {name}")
            seen.add(path)
            content = self._render_template(layout, data, state)

        if state.section_stack:
            raise TemplateError(f"Unclosed section '{state.section_stack[-1]}' in {name}")
        return Markup(content)

    def _render_template(self, name: str, data: dict, state: _RenderState) -> str:
        code = self.get_code(name)
        ns = self._namespace(data, state)
        buffer: list[str] = []
        depth = len(state.buffers)
        state.buffers.append(buffer)
        try:
            exec(code, ns)
        finally:
            del state.buffers[depth:]
        return "".join(buffer)

    def _namespace(self, data: dict, state: _RenderState) -> dict:
        ns: dict = {}
        ns.update(self.shared)
        ns["get"] = lambda key, default=None: ns.get(key, default)
        ns.update(data)
        ns.update({
            "__echo": state.echo,
            "__escape": _escape,
            "__raw": _raw,
            "__extend": state.extend,
            "__start_section": state.start_section,
            "__end_section": state.end_section,
            "__set_section": state.set_section,
            "__yield": state.yield_section,
            "__include": self._include,
        })
        return ns

    def _include(self, scope: dict, name: str, data: dict | None = None) -> Markup:
        variables = {
            k: v for k, v in scope.items()
            if not k.startswith("__") and k not in self.shared and k != "get"
        }
        variables.update(data or {})
        return self.render(name, variables)
