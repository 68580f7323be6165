"""Pattern-based extraction of imports and exports from source files.

Extraction is deliberately textual rather than syntax-tree based:

- Error tolerant: a file that is half-edited still yields whatever
  declarations can be recognised instead of aborting.
- Fast: one regex pass per logical line, no grammar packages needed.
- Multi-language: JavaScript/TypeScript and Python share the same
  :class:`Extractor` interface and produce the same tagged references.

Known blind spots: specifiers assembled at runtime (template literals,
string concatenation, ``require(name)``) and module loads inside strings
are not recognised.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Dict, Iterator, List, Optional, Tuple

from .models import DependencyNode, ExportKind, ExportReference, ImportKind, ImportReference

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language <-> file-extension mapping
# ---------------------------------------------------------------------------
LANGUAGE_MAP: Dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".py": "python",
}

# Upper bound on lines joined while collecting one statement or signature.
_MAX_CONTINUATION = 40


def language_for(path: str) -> Optional[str]:
    return LANGUAGE_MAP.get(PurePosixPath(path).suffix.lower())


def normalize_signature(text: str) -> str:
    """Collapse whitespace so cosmetic reformatting is not a signature change."""
    text = re.sub(r"\s+", " ", text).strip()
    text = re.sub(r"\s*([(),:<>\[\]=|&?])\s*", r"\1", text)
    text = re.sub(r",([)\]>])", r"\1", text)
    text = text.rstrip(";{ ").rstrip()
    return text


def _split_names(body: str) -> List[Tuple[str, str]]:
    """Split ``a, b as c, type d`` into ``(source_name, local_name)`` pairs."""
    pairs: List[Tuple[str, str]] = []
    for raw in body.split(","):
        part = raw.strip()
        if not part:
            continue
        part = re.sub(r"^type\s+", "", part)
        if re.search(r"\s+as\s+", part):
            source, local = re.split(r"\s+as\s+", part, maxsplit=1)
        else:
            source = local = part
        source, local = source.strip(), local.strip()
        if re.fullmatch(r"[\w$*]+", source) and re.fullmatch(r"[\w$*]+", local):
            pairs.append((source, local))
    return pairs


def _balanced_span(lines: List[str], index: int, start: int, open_ch: str, close_ch: str) -> Tuple[str, int]:
    """Join lines from ``lines[index][start:]`` until *open_ch* is balanced.

    Returns the joined text and the index of the last line consumed.  When
    the brackets never balance (file cut mid-edit) the text collected so far
    is returned.
    """
    text = lines[index][start:]
    end = index
    while text.count(open_ch) > text.count(close_ch) and end + 1 < len(lines) and end - index < _MAX_CONTINUATION:
        end += 1
        text += " " + lines[end].strip()
    return text, end


def _cut_after_parens(text: str, stops: Tuple[str, ...]) -> str:
    """Keep *text* through its first balanced ``(...)`` group and any suffix
    (return annotation, heritage clause) up to the first of *stops*."""
    depth = 0
    opened = False
    for pos, ch in enumerate(text):
        if ch == "(":
            depth += 1
            opened = True
        elif ch == ")":
            depth -= 1
            if opened and depth == 0:
                head, tail = text[: pos + 1], text[pos + 1:]
                cut = len(tail)
                for stop in stops:
                    found = tail.find(stop)
                    if found != -1:
                        cut = min(cut, found)
                return head + tail[:cut]
    return text


# ===================================================================
# Abstract Extractor Interface
# ===================================================================

class Extractor(ABC):
    """Extracts tagged import and export references from source text."""

    language: str = ""

    @abstractmethod
    def extract_imports(self, content: str) -> List[ImportReference]:
        ...

    @abstractmethod
    def extract_exports(self, content: str, file_path: str = "") -> List[ExportReference]:
        ...

    def parse(self, file_path: str, content: str) -> DependencyNode:
        return DependencyNode(
            file_path=file_path,
            language=self.language,
            imports=tuple(self.extract_imports(content)),
            exports=tuple(self.extract_exports(content, file_path)),
        )


# ===================================================================
# JavaScript / TypeScript
# ===================================================================

_Q = r"""['"]([^'"\n]+)['"]"""

_IMPORT_DEFAULT_NAMED_RE = re.compile(r"^import\s+(?:type\s+)?([\w$]+)\s*,\s*\{([^}]*)\}\s*from\s*" + _Q)
_IMPORT_DEFAULT_NAMESPACE_RE = re.compile(r"^import\s+([\w$]+)\s*,\s*\*\s*as\s+([\w$]+)\s+from\s*" + _Q)
_IMPORT_NAMED_RE = re.compile(r"^import\s+(?:type\s+)?\{([^}]*)\}\s*from\s*" + _Q)
_IMPORT_NAMESPACE_RE = re.compile(r"^import\s+(?:type\s+)?\*\s*as\s+([\w$]+)\s+from\s*" + _Q)
_IMPORT_DEFAULT_RE = re.compile(r"^import\s+(?:type\s+)?([\w$]+)\s+from\s*" + _Q)
_IMPORT_SIDE_EFFECT_RE = re.compile(r"^import\s*" + _Q)

_REQUIRE_DESTRUCTURE_RE = re.compile(r"(?:const|let|var)\s+\{([^}]*)\}\s*=\s*require\s*\(\s*" + _Q + r"\s*\)")
_REQUIRE_CONST_RE = re.compile(r"(?:const|let|var)\s+([\w$]+)\s*=\s*require\s*\(\s*" + _Q + r"\s*\)")
_REQUIRE_BARE_RE = re.compile(r"\brequire\s*\(\s*" + _Q + r"\s*\)")
_DYNAMIC_IMPORT_RE = re.compile(r"\bimport\s*\(\s*" + _Q + r"\s*\)")

_REEXPORT_NAMED_RE = re.compile(r"^export\s+(?:type\s+)?\{([^}]*)\}\s*from\s*" + _Q)
_REEXPORT_ALL_RE = re.compile(r"^export\s+(?:type\s+)?\*\s*(?:as\s+([\w$]+)\s+)?from\s*" + _Q)
_EXPORT_LIST_RE = re.compile(r"^export\s+(?:type\s+)?\{([^}]*)\}")

_EXPORT_DEFAULT_RE = re.compile(r"^export\s+default\b")
_EXPORT_ASSIGN_RE = re.compile(r"^export\s*=")
_EXPORT_FUNCTION_RE = re.compile(r"^export\s+(?:declare\s+)?(?:async\s+)?function\s*\*?\s*([\w$]+)")
_EXPORT_CLASS_RE = re.compile(r"^export\s+(?:declare\s+)?(?:abstract\s+)?class\s+([\w$]+)")
_EXPORT_INTERFACE_RE = re.compile(r"^export\s+(?:declare\s+)?interface\s+([\w$]+)")
_EXPORT_TYPE_RE = re.compile(r"^export\s+(?:declare\s+)?type\s+([\w$]+)")
_EXPORT_ENUM_RE = re.compile(r"^export\s+(?:declare\s+)?(?:const\s+)?enum\s+([\w$]+)")
_EXPORT_DESTRUCTURE_RE = re.compile(r"^export\s+(?:declare\s+)?(?:const|let|var)\s+\{([^}]*)\}")
_EXPORT_VAR_RE = re.compile(r"^export\s+(?:declare\s+)?(?:const|let|var)\s+([\w$]+)")
_MODULE_EXPORTS_RE = re.compile(r"^module\.exports\s*=")
_MODULE_EXPORTS_PROP_RE = re.compile(r"^(?:module\.)?exports\.([\w$]+)\s*=")

_LOCAL_DECL_RE = re.compile(
    r"^(?:declare\s+)?(?:(async\s+)?function\s*\*?\s*|(?:abstract\s+)?class\s+|interface\s+|type\s+|(?:const\s+)?enum\s+|(?:const|let|var)\s+)([\w$]+)"
)

_BRACE_LIST_START_RE = re.compile(r"^(?:import|export)\s+(?:type\s+)?(?:[\w$]+\s*,\s*)?\{")


def strip_js_comments(source: str) -> str:
    """Blank out comments and template-literal bodies, preserving newlines.

    Ordinary string literals are kept because import specifiers live in
    them.  Regex literals are not recognised, so a ``//`` inside one may
    hide the rest of that line.
    """
    out: List[str] = []
    i, n = 0, len(source)
    while i < n:
        ch = source[i]
        nxt = source[i + 1] if i + 1 < n else ""
        if ch == "/" and nxt == "/":
            end = source.find("\n", i)
            end = n if end == -1 else end
            out.append(" " * (end - i))
            i = end
        elif ch == "/" and nxt == "*":
            end = source.find("*/", i + 2)
            end = n if end == -1 else end + 2
            out.append(re.sub(r"[^\n]", " ", source[i:end]))
            i = end
        elif ch in ("'", '"'):
            j = i + 1
            while j < n and source[j] != ch and source[j] != "\n":
                j += 2 if source[j] == "\\" else 1
            out.append(source[i:j + 1])
            i = j + 1
        elif ch == "`":
            j = i + 1
            while j < n and source[j] != "`":
                j += 2 if source[j] == "\\" else 1
            out.append("`" + re.sub(r"[^\n]", " ", source[i + 1:j]) + "`")
            i = j + 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _logical_lines(lines: List[str]) -> Iterator[Tuple[int, str]]:
    """Yield ``(line_number, statement)`` with multi-line brace lists joined."""
    index = 0
    while index < len(lines):
        stripped = lines[index].strip()
        if _BRACE_LIST_START_RE.match(stripped):
            text, end = _balanced_span(lines, index, 0, "{", "}")
            # The specifier may sit on the line after the closing brace.
            if "from" not in text.split("}")[-1] and end + 1 < len(lines):
                follow = lines[end + 1].strip()
                if follow.startswith("from"):
                    text += " " + follow
                    end += 1
            yield index + 1, text.strip()
            index = end + 1
            continue
        yield index + 1, stripped
        index += 1


class ScriptExtractor(Extractor):
    """Extractor for JavaScript and TypeScript (ESM and CommonJS)."""

    language = "typescript"

    def extract_imports(self, content: str) -> List[ImportReference]:
        imports: List[ImportReference] = []
        lines = strip_js_comments(content).split("\n")

        for line_no, text in _logical_lines(lines):
            if not text:
                continue
            imports.extend(self._static_imports(text, line_no))
            imports.extend(self._runtime_imports(text, line_no))
        return imports

    @staticmethod
    def _static_imports(text: str, line_no: int) -> List[ImportReference]:
        m = _IMPORT_DEFAULT_NAMED_RE.match(text)
        if m:
            named = tuple(source for source, _ in _split_names(m.group(2)))
            return [
                ImportReference(m.group(3), ImportKind.DEFAULT, line_no, ("default",)),
                ImportReference(m.group(3), ImportKind.NAMED, line_no, named),
            ]
        m = _IMPORT_DEFAULT_NAMESPACE_RE.match(text)
        if m:
            return [
                ImportReference(m.group(3), ImportKind.DEFAULT, line_no, ("default",)),
                ImportReference(m.group(3), ImportKind.NAMESPACE, line_no, (m.group(2),)),
            ]
        m = _IMPORT_NAMED_RE.match(text)
        if m:
            named = tuple(source for source, _ in _split_names(m.group(1)))
            return [ImportReference(m.group(2), ImportKind.NAMED, line_no, named)]
        m = _IMPORT_NAMESPACE_RE.match(text)
        if m:
            return [ImportReference(m.group(2), ImportKind.NAMESPACE, line_no, (m.group(1),))]
        m = _IMPORT_DEFAULT_RE.match(text)
        if m:
            return [ImportReference(m.group(2), ImportKind.DEFAULT, line_no, ("default",))]
        m = _IMPORT_SIDE_EFFECT_RE.match(text)
        if m:
            return [ImportReference(m.group(1), ImportKind.SIDE_EFFECT, line_no)]

        # Re-exports are dependencies too.
        m = _REEXPORT_NAMED_RE.match(text)
        if m:
            named = tuple(source for source, _ in _split_names(m.group(1)))
            return [ImportReference(m.group(2), ImportKind.NAMED, line_no, named)]
        m = _REEXPORT_ALL_RE.match(text)
        if m:
            return [ImportReference(m.group(2), ImportKind.NAMESPACE, line_no, ("*",))]
        return []

    @staticmethod
    def _runtime_imports(text: str, line_no: int) -> List[ImportReference]:
        found: List[ImportReference] = []
        taken: List[Tuple[int, int]] = []

        def _free(span: Tuple[int, int]) -> bool:
            return not any(span[0] < end and start < span[1] for start, end in taken)

        for m in _REQUIRE_DESTRUCTURE_RE.finditer(text):
            named = tuple(source for source, _ in _split_names(m.group(1).replace(":", " as ")))
            found.append(ImportReference(m.group(2), ImportKind.NAMED, line_no, named))
            taken.append(m.span())
        for m in _REQUIRE_CONST_RE.finditer(text):
            if _free(m.span()):
                found.append(ImportReference(m.group(2), ImportKind.NAMESPACE, line_no, (m.group(1),)))
                taken.append(m.span())
        for m in _REQUIRE_BARE_RE.finditer(text):
            if _free(m.span()):
                found.append(ImportReference(m.group(1), ImportKind.SIDE_EFFECT, line_no))
                taken.append(m.span())
        for m in _DYNAMIC_IMPORT_RE.finditer(text):
            found.append(ImportReference(m.group(1), ImportKind.NAMESPACE, line_no))
        return found

    def extract_exports(self, content: str, file_path: str = "") -> List[ExportReference]:
        exports: List[ExportReference] = []
        lines = strip_js_comments(content).split("\n")
        bindings = self._import_bindings(lines)
        local_decls = self._local_declarations(lines)

        for line_no, text in _logical_lines(lines):
            if not text.startswith(("export", "module.exports", "exports.")):
                continue
            exports.extend(self._exports_from(text, line_no, lines, bindings, local_decls))
        return exports

    def _exports_from(
        self,
        text: str,
        line_no: int,
        lines: List[str],
        bindings: Dict[str, Tuple[str, str]],
        local_decls: Dict[str, Tuple[ExportKind, str]],
    ) -> List[ExportReference]:
        index = line_no - 1

        m = _REEXPORT_NAMED_RE.match(text)
        if m:
            return [
                ExportReference(local, ExportKind.CONST, line_no, True, m.group(2), source_name=source)
                for source, local in _split_names(m.group(1))
            ]
        m = _REEXPORT_ALL_RE.match(text)
        if m:
            return [ExportReference(m.group(1) or "*", ExportKind.NAMESPACE, line_no, True, m.group(2), source_name="*")]
        m = _EXPORT_LIST_RE.match(text)
        if m:
            refs = []
            for source, local in _split_names(m.group(1)):
                if source in bindings:
                    specifier, imported = bindings[source]
                    refs.append(ExportReference(local, ExportKind.CONST, line_no, True, specifier, source_name=imported))
                else:
                    kind, signature = local_decls.get(source, (ExportKind.CONST, ""))
                    refs.append(ExportReference(local, kind, line_no, signature=signature))
            return refs
        if _EXPORT_DEFAULT_RE.match(text) or _EXPORT_ASSIGN_RE.match(text) or _MODULE_EXPORTS_RE.match(text):
            signature = ""
            if re.search(r"\bfunction\b", text) or re.search(r"=>", text):
                signature = self._function_signature(lines, index, lines[index].find("default"))
            return [ExportReference("default", ExportKind.DEFAULT, line_no, signature=signature)]
        m = _EXPORT_FUNCTION_RE.match(text)
        if m:
            start = lines[index].find("function")
            return [ExportReference(m.group(1), ExportKind.FUNCTION, line_no,
                                    signature=self._function_signature(lines, index, start))]
        m = _EXPORT_CLASS_RE.match(text)
        if m:
            return [ExportReference(m.group(1), ExportKind.CLASS, line_no,
                                    signature=self._header_signature(lines, index, "class"))]
        m = _EXPORT_INTERFACE_RE.match(text)
        if m:
            return [ExportReference(m.group(1), ExportKind.INTERFACE, line_no,
                                    signature=self._header_signature(lines, index, "interface"))]
        m = _EXPORT_ENUM_RE.match(text)
        if m:
            return [ExportReference(m.group(1), ExportKind.TYPE, line_no,
                                    signature=self._header_signature(lines, index, "enum"))]
        m = _EXPORT_TYPE_RE.match(text)
        if m:
            return [ExportReference(m.group(1), ExportKind.TYPE, line_no,
                                    signature=self._type_signature(lines, index))]
        m = _EXPORT_DESTRUCTURE_RE.match(text)
        if m:
            return [ExportReference(local, ExportKind.CONST, line_no) for _, local in _split_names(m.group(1).replace(":", " as "))]
        m = _EXPORT_VAR_RE.match(text)
        if m:
            return [ExportReference(m.group(1), ExportKind.CONST, line_no,
                                    signature=self._const_signature(lines, index, m.group(1)))]
        m = _MODULE_EXPORTS_PROP_RE.match(text)
        if m:
            return [ExportReference(m.group(1), ExportKind.CONST, line_no)]
        return []

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _import_bindings(lines: List[str]) -> Dict[str, Tuple[str, str]]:
        """Map each imported local name to ``(specifier, source_name)``."""
        bindings: Dict[str, Tuple[str, str]] = {}
        for _, text in _logical_lines(lines):
            m = _IMPORT_DEFAULT_NAMED_RE.match(text)
            if m:
                bindings[m.group(1)] = (m.group(3), "default")
                for source, local in _split_names(m.group(2)):
                    bindings[local] = (m.group(3), source)
                continue
            m = _IMPORT_NAMED_RE.match(text)
            if m:
                for source, local in _split_names(m.group(1)):
                    bindings[local] = (m.group(2), source)
                continue
            m = _IMPORT_NAMESPACE_RE.match(text)
            if m:
                bindings[m.group(1)] = (m.group(2), "*")
                continue
            m = _IMPORT_DEFAULT_RE.match(text)
            if m:
                bindings[m.group(1)] = (m.group(2), "default")
        return bindings

    def _local_declarations(self, lines: List[str]) -> Dict[str, Tuple[ExportKind, str]]:
        """Top-level declarations that are exported later by name."""
        decls: Dict[str, Tuple[ExportKind, str]] = {}
        for index, line in enumerate(lines):
            if not line or line[0].isspace():
                continue
            m = _LOCAL_DECL_RE.match(line)
            if not m:
                continue
            keyword = line[: m.start(2)]
            name = m.group(2)
            if "function" in keyword:
                decls[name] = (ExportKind.FUNCTION, self._function_signature(lines, index, line.find("function")))
            elif "class" in keyword:
                decls[name] = (ExportKind.CLASS, self._header_signature(lines, index, "class"))
            elif "interface" in keyword:
                decls[name] = (ExportKind.INTERFACE, self._header_signature(lines, index, "interface"))
            elif "enum" in keyword:
                decls[name] = (ExportKind.TYPE, self._header_signature(lines, index, "enum"))
            elif keyword.strip().endswith("type"):
                decls[name] = (ExportKind.TYPE, self._type_signature(lines, index))
            else:
                decls[name] = (ExportKind.CONST, self._const_signature(lines, index, name))
        return decls

    @staticmethod
    def _function_signature(lines: List[str], index: int, start: int) -> str:
        start = max(start, 0)
        text, _ = _balanced_span(lines, index, start, "(", ")")
        return normalize_signature(_cut_after_parens(text, ("{", "=>", ";")))

    @staticmethod
    def _header_signature(lines: List[str], index: int, keyword: str) -> str:
        line = lines[index]
        start = max(line.find(keyword), 0)
        text = line[start:]
        end = index
        while "{" not in text and end + 1 < len(lines) and end - index < _MAX_CONTINUATION:
            end += 1
            text += " " + lines[end].strip()
        return normalize_signature(text.split("{")[0])

    @staticmethod
    def _type_signature(lines: List[str], index: int) -> str:
        line = lines[index]
        start = max(line.find("type"), 0)
        text = line[start:]
        end = index
        # Union members continue on lines starting with ``|``.
        while end + 1 < len(lines) and end - index < _MAX_CONTINUATION and (
            text.rstrip().endswith(("=", "|", "&", ",", "{", "<"))
            or lines[end + 1].strip().startswith(("|", "&", "}"))
            or text.count("{") > text.count("}")
        ):
            end += 1
            text += " " + lines[end].strip()
        return normalize_signature(text.split(";")[0])

    @staticmethod
    def _const_signature(lines: List[str], index: int, name: str) -> str:
        line = lines[index]
        m = re.search(re.escape(name) + r"\s*(:[^=]+)?=\s*(async\s+)?(function\b[^(]*)?\(", line)
        if m:
            text, _ = _balanced_span(lines, index, m.start(), "(", ")")
            if m.group(3) or "=>" in text:
                return normalize_signature(_cut_after_parens(text, ("{", "=>", ";")))
        m = re.search(re.escape(name) + r"\s*:\s*([^=;]+)", line)
        if m:
            return normalize_signature(f"{name}: {m.group(1)}")
        return ""


# ===================================================================
# Python
# ===================================================================

_PY_TRIPLE_QUOTED_RE = re.compile(r'("""|\'\'\')[\s\S]*?\1')
_PY_IMPORT_RE = re.compile(r"^\s*import\s+(.+)$")
_PY_FROM_IMPORT_RE = re.compile(r"^\s*from\s+(\.*[\w.]*)\s+import\s+(.+)$")
_PY_DEF_RE = re.compile(r"^(async\s+)?def\s+(\w+)\s*\(")
_PY_CLASS_RE = re.compile(r"^class\s+(\w+)")
_PY_TYPE_ALIAS_RE = re.compile(r"^(?:type\s+(\w+)\s*(?:\[[^\]]*\])?\s*=|(\w+)\s*:\s*(?:typing\.)?TypeAlias\s*=)")
_PY_CONST_RE = re.compile(r"^([A-Z][A-Z0-9_]*)\s*(?::\s*[^=]+)?=(?!=)")


def strip_py_comments(source: str) -> str:
    """Blank comments and triple-quoted strings, preserving line numbers."""
    source = _PY_TRIPLE_QUOTED_RE.sub(lambda m: re.sub(r"[^\n]", " ", m.group(0)), source)
    cleaned = []
    for line in source.split("\n"):
        if "#" in line and "'" not in line and '"' not in line:
            line = line[: line.index("#")]
        elif line.lstrip().startswith("#"):
            line = ""
        cleaned.append(line.rstrip())
    return "\n".join(cleaned)


def _py_statement(lines: List[str], index: int) -> Tuple[str, int]:
    """Join parenthesised or backslash-continued import statements."""
    text = lines[index]
    end = index
    while end + 1 < len(lines) and end - index < _MAX_CONTINUATION and (
        text.count("(") > text.count(")") or text.endswith("\\")
    ):
        end += 1
        text = text.rstrip("\\") + " " + lines[end].strip()
    return text, end


class PythonExtractor(Extractor):
    """Extractor for Python modules."""

    language = "python"

    def extract_imports(self, content: str) -> List[ImportReference]:
        imports: List[ImportReference] = []
        lines = strip_py_comments(content).split("\n")
        index = 0
        while index < len(lines):
            line = lines[index]
            if "import" not in line:
                index += 1
                continue
            text, end = _py_statement(lines, index)
            imports.extend(self._imports_from(text, index + 1))
            index = end + 1
        return imports

    @staticmethod
    def _imports_from(text: str, line_no: int) -> List[ImportReference]:
        m = _PY_FROM_IMPORT_RE.match(text)
        if m:
            module, names = m.group(1), m.group(2).strip().strip("()").strip()
            if not module:
                return []
            if names.startswith("*"):
                return [ImportReference(module, ImportKind.NAMESPACE, line_no, ("*",))]
            symbols = tuple(source for source, _ in _split_names(names) if source != "*")
            if not symbols:
                return []
            return [ImportReference(module, ImportKind.NAMED, line_no, symbols)]
        m = _PY_IMPORT_RE.match(text)
        if m:
            refs = []
            for source, local in _split_names(m.group(1)):
                refs.append(ImportReference(source, ImportKind.NAMESPACE, line_no, (local,)))
            # dotted names fail the identifier check in _split_names
            for part in m.group(1).split(","):
                dotted = part.strip().split(" as ")
                module = dotted[0].strip()
                if "." in module and re.fullmatch(r"[\w.]+", module):
                    local = dotted[1].strip() if len(dotted) > 1 else module
                    refs.append(ImportReference(module, ImportKind.NAMESPACE, line_no, (local,)))
            return refs
        return []

    def extract_exports(self, content: str, file_path: str = "") -> List[ExportReference]:
        exports: List[ExportReference] = []
        lines = strip_py_comments(content).split("\n")
        is_package = PurePosixPath(file_path).name == "__init__.py"

        index = 0
        while index < len(lines):
            line = lines[index]
            line_no = index + 1
            if not line or line[0].isspace():
                index += 1
                continue

            m = _PY_DEF_RE.match(line)
            if m:
                text, _ = _balanced_span(lines, index, 0, "(", ")")
                exports.append(ExportReference(m.group(2), ExportKind.FUNCTION, line_no,
                                               signature=normalize_signature(_cut_after_parens(text, (":",)).replace("async ", ""))))
            elif _PY_CLASS_RE.match(line):
                name = _PY_CLASS_RE.match(line).group(1)
                text, _ = _balanced_span(lines, index, 0, "(", ")")
                exports.append(ExportReference(name, ExportKind.CLASS, line_no,
                                               signature=normalize_signature(text.rsplit(":", 1)[0])))
            elif _PY_TYPE_ALIAS_RE.match(line):
                m = _PY_TYPE_ALIAS_RE.match(line)
                exports.append(ExportReference(m.group(1) or m.group(2), ExportKind.TYPE, line_no,
                                               signature=normalize_signature(line)))
            elif _PY_CONST_RE.match(line):
                m = _PY_CONST_RE.match(line)
                annotation = re.match(r"^\w+\s*:\s*([^=]+)=", line)
                signature = normalize_signature(f"{m.group(1)}: {annotation.group(1)}") if annotation else ""
                exports.append(ExportReference(m.group(1), ExportKind.CONST, line_no, signature=signature))
            elif is_package and line.startswith("from "):
                text, end = _py_statement(lines, index)
                exports.extend(self._package_reexports(text, line_no))
                index = end + 1
                continue
            index += 1

        return [e for e in exports if not e.name.startswith("_")]

    @staticmethod
    def _package_reexports(text: str, line_no: int) -> List[ExportReference]:
        """Names imported into a package ``__init__`` are part of its surface."""
        m = _PY_FROM_IMPORT_RE.match(text)
        if not m or not m.group(1):
            return []
        module, names = m.group(1), m.group(2).strip().strip("()").strip()
        if names.startswith("*"):
            return [ExportReference("*", ExportKind.NAMESPACE, line_no, True, module, source_name="*")]
        return [
            ExportReference(local, ExportKind.CONST, line_no, True, module, source_name=source)
            for source, local in _split_names(names)
        ]


# ===================================================================
# Dispatch
# ===================================================================

_SCRIPT = ScriptExtractor()
_PYTHON = PythonExtractor()


def get_extractor(file_path: str) -> Optional[Extractor]:
    language = language_for(file_path)
    if language is None:
        return None
    return _PYTHON if language == "python" else _SCRIPT


def parse_source(file_path: str, content: str) -> DependencyNode:
    """Extract a :class:`DependencyNode` for *file_path* from *content*.

    Never raises for malformed content; an unrecognised file yields a node
    with no imports or exports.
    """
    language = language_for(file_path) or "unknown"
    extractor = get_extractor(file_path)
    if extractor is None:
        return DependencyNode(file_path=file_path, language=language)
    try:
        node = extractor.parse(file_path, content)
    except Exception as exc:  # extraction must never abort a scan
        logger.debug("Extraction failed for %s: %s", file_path, exc)
        return DependencyNode(file_path=file_path, language=language)
    if node.language != language:
        node = DependencyNode(node.file_path, language, node.imports, node.exports)
    return node


def extract_exports(file_path: str, content: str) -> List[ExportReference]:
    """Exports of *content* as if it were the file at *file_path*."""
    return list(parse_source(file_path, content).exports)
