"""Pattern-based symbol extraction for Kotlin sources.

There is no full Kotlin grammar in the stack, so declarations are located by
regular expressions plus a small brace/paren scanner. Comments and string
literal contents are blanked out first (newlines kept) so that braces and
keywords inside them cannot derail the scanner. The result is best-effort:
anything the scanner cannot make sense of is skipped, never raised.
"""

import bisect
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from .models import ClassDescriptor, FieldDescriptor, MethodDescriptor, Parameter
from .symbol_extractors import SymbolExtractor, qualified_name, qualify_call, role_hints

logger = logging.getLogger(__name__)

_PACKAGE = re.compile(r"^\s*package\s+([\w.]+)", re.MULTILINE)
_DECLARATION = re.compile(r"(?<!::)\b(?:class|object|interface)[ \t]+(\w+)")
_CONSTRUCTOR_PREFIX = re.compile(
    r"(?:@\w+(?:\([^)]*\))?\s*)*(?:(?:private|internal|protected|public)\s+)?constructor\s*"
)
_FUN_HEADER = re.compile(r"\bfun\s+(?:<[^>]*>\s*)?(?:[\w.]+(?:<[^>]*>)?\??\.)?(\w+)\s*\(")
_FIELD = re.compile(
    r"\b(?:val|var)\s+(\w+)\s*:\s*([\w<>?.,\s]+?)(?:\s*=|\s+by\b|$)", re.MULTILINE
)
_CONSTRUCTOR_FIELD = re.compile(r"\b(?:val|var)\s+(\w+)\s*:\s*(.+)", re.DOTALL)
_PARAMETER = re.compile(r"(\w+)\s*:\s*(.+)", re.DOTALL)
_RECEIVER_CALL = re.compile(r"(\w+)(?:\?|!!)?\.(\w+)\s*(?:\(|\{)")
_BARE_CALL = re.compile(r"(?<![\w.@:])(\w+)\s*(?:\(|\{)")
_ANNOTATION = re.compile(r"(?<![\w@])@(\w+)")

RESERVED_WORDS = frozenset(
    {
        "if", "when", "while", "for", "return", "val", "var", "fun", "class",
        "catch", "try", "else", "do", "object", "init", "throw", "super",
        "this", "in", "is", "as", "constructor",
    }
)

_NO_DECLARATION_NAMES = frozenset({"fun", "val", "var", "by", "constructor"})


@dataclass
class _Declaration:
    """A located class/object/interface header and its body span."""

    name: str
    start: int
    line: int
    constructor_params: str
    inheritance: str
    body_start: Optional[int]  # index of "{"
    body_end: Optional[int]  # index of matching "}"

    @property
    def end(self) -> int:
        if self.body_end is not None:
            return self.body_end
        return self.start

    def contains(self, pos: int) -> bool:
        return self.start <= pos <= self.end


@dataclass
class _Function:
    """A located ``fun`` declaration."""

    name: str
    start: int
    line: int
    params: str
    return_type: str
    body_start: Optional[int]
    body_end: Optional[int]
    annotations: List[str] = field(default_factory=list)


def mask_source(content: str) -> str:
    """Blank out comments and string/char literal contents, keeping offsets and newlines."""
    out = list(content)
    n = len(content)

    def blank(start: int, end: int) -> None:
        for k in range(start, min(end, n)):
            if out[k] != "\n":
                out[k] = " "

    i = 0
    while i < n:
        if content.startswith("//", i):
            end = content.find("\n", i)
            end = n if end < 0 else end
            blank(i, end)
            i = end
        elif content.startswith("/*", i):
            end = content.find("*/", i + 2)
            end = n if end < 0 else end + 2
            blank(i, end)
            i = end
        elif content.startswith('"""', i):
            end = content.find('"""', i + 3)
            if end < 0:
                blank(i + 3, n)
                i = n
            else:
                blank(i + 3, end)
                i = end + 3
        elif content[i] in "\"'":
            quote = content[i]
            j = i + 1
            while j < n and content[j] != quote and content[j] != "\n":
                if content[j] == "\\":
                    j += 1
                j += 1
            blank(i + 1, j)
            i = j + 1
        else:
            i += 1
    return "".join(out)


def find_matching(text: str, open_index: int, open_char: str, close_char: str) -> int:
    """Index of the bracket closing the one at ``open_index``, or -1."""
    depth = 0
    for i in range(open_index, len(text)):
        c = text[i]
        if c == open_char:
            depth += 1
        elif c == close_char:
            # "->" is an arrow, not a closing angle bracket
            if close_char == ">" and i > 0 and text[i - 1] == "-":
                continue
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_top_level(text: str, separator: str = ",") -> List[str]:
    """Split on ``separator`` outside (), <>, [] and {}."""
    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for i, c in enumerate(text):
        if c in "(<[{":
            depth += 1
        elif c in ")]}" or (c == ">" and not (i > 0 and text[i - 1] == "-")):
            depth = max(0, depth - 1)
        if c == separator and depth == 0:
            parts.append("".join(current))
            current = []
        else:
            current.append(c)
    if "".join(current).strip():
        parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def _skip_ws(text: str, i: int) -> int:
    while i < len(text) and text[i].isspace():
        i += 1
    return i


class KotlinSymbolExtractor(SymbolExtractor):
    """Regex/scanner-based extraction of Kotlin classes, methods and fields."""

    def __init__(self):
        super().__init__("kotlin")

    def extract_source(self, source: str, file_path: str) -> List[ClassDescriptor]:
        masked = mask_source(source)
        newlines = [i for i, c in enumerate(masked) if c == "\n"]
        depth = self._depth_index(masked)

        package_match = _PACKAGE.search(masked)
        package_name = package_match.group(1) if package_match else ""

        declarations = self._find_declarations(masked, newlines)
        functions = self._find_functions(masked, newlines)

        # Each function belongs to the innermost declaration that contains it
        owned: List[List[_Function]] = [[] for _ in declarations]
        top_level: List[_Function] = []
        for function in functions:
            owner = self._innermost(declarations, function.start)
            if owner is None:
                top_level.append(function)
            else:
                owned[owner].append(function)

        classes: List[ClassDescriptor] = []
        for index, declaration in enumerate(declarations):
            qname = qualified_name(package_name, declaration.name)
            methods = self._build_methods(masked, owned[index], functions, qname)
            fields = self._extract_fields(masked, newlines, depth, declaration, declarations)
            fields.extend(self._constructor_fields(declaration))

            super_class, interfaces = self._split_inheritance(declaration.inheritance)
            is_composable = (
                "@Composable" in masked
                and re.search(rf"\bfun\s+{re.escape(declaration.name)}\s*\(", masked) is not None
            ) or any("Composable" in method.annotations for method in methods)

            classes.append(
                ClassDescriptor(
                    name=declaration.name,
                    qualified_name=qname,
                    file_path=file_path,
                    package_name=package_name,
                    super_class=super_class,
                    interfaces=interfaces,
                    methods=methods,
                    fields=fields,
                    is_composable=is_composable,
                    **role_hints(super_class),
                )
            )

        if top_level:
            classes.append(self._file_facade(masked, file_path, package_name, top_level, functions))

        return classes

    # Declarations

    def _find_declarations(self, masked: str, newlines: List[int]) -> List[_Declaration]:
        declarations = []
        for match in _DECLARATION.finditer(masked):
            name = match.group(1)
            if name in _NO_DECLARATION_NAMES:
                continue
            try:
                declaration = self._scan_header(masked, match, newlines)
            except Exception as e:
                logger.debug(f"Skipping unparsable declaration header '{name}': {e}")
                continue
            if declaration is not None:
                declarations.append(declaration)
        return declarations

    def _scan_header(
        self, masked: str, match: "re.Match[str]", newlines: List[int]
    ) -> Optional[_Declaration]:
        n = len(masked)
        i = _skip_ws(masked, match.end())

        if i < n and masked[i] == "<":
            close = find_matching(masked, i, "<", ">")
            if close < 0:
                return None
            i = _skip_ws(masked, close + 1)

        prefix = _CONSTRUCTOR_PREFIX.match(masked, i)
        if prefix and prefix.group(0) and prefix.end() < n and masked[prefix.end()] == "(":
            i = prefix.end()

        constructor_params = ""
        if i < n and masked[i] == "(":
            close = find_matching(masked, i, "(", ")")
            if close < 0:
                return None
            constructor_params = masked[i + 1 : close]
            i = _skip_ws(masked, close + 1)

        inheritance = ""
        if i < n and masked[i] == ":":
            i, inheritance = self._scan_inheritance(masked, i + 1)

        i = _skip_ws(masked, i)
        body_start = body_end = None
        if i < n and masked[i] == "{":
            close = find_matching(masked, i, "{", "}")
            body_start = i
            body_end = close if close >= 0 else n - 1

        return _Declaration(
            name=match.group(1),
            start=match.start(),
            line=bisect.bisect_right(newlines, match.start()) + 1,
            constructor_params=constructor_params,
            inheritance=inheritance,
            body_start=body_start,
            body_end=body_end,
        )

    @staticmethod
    def _scan_inheritance(masked: str, i: int) -> Tuple[int, str]:
        """Read an inheritance clause up to the body brace or the end of the declaration."""
        n = len(masked)
        start = i
        depth = 0
        while i < n:
            c = masked[i]
            if c in "(<":
                depth += 1
            elif c == ")" or (c == ">" and masked[i - 1] != "-"):
                depth = max(0, depth - 1)
            elif c == "{" and depth == 0:
                break
            elif c == "\n" and depth == 0:
                clause = masked[start:i].strip()
                following = _skip_ws(masked, i)
                if clause and not clause.endswith(",") and (
                    following >= n or masked[following] != "{"
                ):
                    break
            i += 1
        clause = " ".join(masked[start:i].split())
        clause = clause.split(" where ")[0]
        return i, clause

    @staticmethod
    def _split_inheritance(inheritance: str) -> Tuple[Optional[str], List[str]]:
        if not inheritance:
            return None, []
        parts = [re.split(r"[(<]", part)[0].strip() for part in split_top_level(inheritance)]
        parts = [part for part in parts if part]
        if not parts:
            return None, []
        return parts[0], parts[1:]

    @staticmethod
    def _innermost(declarations: List[_Declaration], pos: int) -> Optional[int]:
        best = None
        for index, declaration in enumerate(declarations):
            if declaration.body_start is None:
                continue
            if declaration.body_start < pos <= declaration.end:
                if best is None or declaration.start > declarations[best].start:
                    best = index
        return best

    # Functions

    def _find_functions(self, masked: str, newlines: List[int]) -> List[_Function]:
        functions = []
        for match in _FUN_HEADER.finditer(masked):
            try:
                function = self._scan_function(masked, match, newlines)
            except Exception as e:
                logger.debug(f"Skipping unparsable function '{match.group(1)}': {e}")
                continue
            if function is not None:
                functions.append(function)
        return functions

    def _scan_function(
        self, masked: str, match: "re.Match[str]", newlines: List[int]
    ) -> Optional[_Function]:
        n = len(masked)
        open_paren = match.end() - 1
        close_paren = find_matching(masked, open_paren, "(", ")")
        if close_paren < 0:
            return None
        params = masked[open_paren + 1 : close_paren]

        i = _skip_ws(masked, close_paren + 1)
        return_type = "Unit"
        if i < n and masked[i] == ":":
            j = i + 1
            depth = 0
            while j < n:
                c = masked[j]
                if c in "(<":
                    depth += 1
                elif c == ")" or (c == ">" and masked[j - 1] != "-"):
                    depth = max(0, depth - 1)
                elif depth == 0 and c in "{=\n":
                    break
                j += 1
            return_type = " ".join(masked[i + 1 : j].split()) or "Unit"
            i = _skip_ws(masked, j)

        body_start = body_end = None
        if i < n and masked[i] == "{":
            close = find_matching(masked, i, "{", "}")
            body_start = i
            body_end = close if close >= 0 else n - 1
        elif i < n and masked[i] == "=":
            body_start = i
            body_end = self._expression_end(masked, i + 1)

        line = bisect.bisect_right(newlines, match.start()) + 1
        return _Function(
            name=match.group(1),
            start=match.start(),
            line=line,
            params=params,
            return_type=return_type,
            body_start=body_start,
            body_end=body_end,
            annotations=self._annotations_before(masked, match.start()),
        )

    @staticmethod
    def _expression_end(masked: str, i: int) -> int:
        """End of an expression body: the first newline outside any bracket."""
        n = len(masked)
        depth = 0
        while i < n:
            c = masked[i]
            if c in "({[":
                depth += 1
            elif c in ")}]":
                depth -= 1
                if depth < 0:
                    return i - 1
            elif c == "\n" and depth == 0:
                return i
            i += 1
        return n - 1

    @staticmethod
    def _annotations_before(masked: str, start: int) -> List[str]:
        """Annotation names on the ``fun`` line and on annotation-only lines above it."""
        line_start = masked.rfind("\n", 0, start) + 1
        segments = [masked[line_start:start]]
        cursor = line_start - 1
        while cursor > 0:
            previous_start = masked.rfind("\n", 0, cursor) + 1
            line = masked[previous_start:cursor].strip()
            if line and not line.startswith("@"):
                break
            segments.append(line)
            cursor = previous_start - 1
        return [name for segment in reversed(segments) for name in _ANNOTATION.findall(segment)]

    def _build_methods(
        self,
        masked: str,
        owned: List[_Function],
        all_functions: List[_Function],
        class_qname: str,
    ) -> List[MethodDescriptor]:
        methods = []
        for function in owned:
            methods.append(
                MethodDescriptor(
                    name=function.name,
                    qualified_name=f"{class_qname}.{function.name}",
                    return_type=function.return_type,
                    line_number=function.line,
                    parameters=self._parameters(function.params),
                    calls_to=self._extract_calls(self._own_body(masked, function, all_functions)),
                    annotations=function.annotations,
                )
            )
        return methods

    @staticmethod
    def _own_body(masked: str, function: _Function, all_functions: List[_Function]) -> str:
        """Body text with the bodies of nested functions blanked out."""
        if function.body_start is None or function.body_end is None:
            return ""
        start, end = function.body_start + 1, function.body_end
        body = list(masked[start:end])
        for other in all_functions:
            if other is function or other.body_end is None:
                continue
            if start <= other.start and other.body_end <= end:
                for k in range(other.start - start, other.body_end - start + 1):
                    if 0 <= k < len(body) and body[k] != "\n":
                        body[k] = " "
        return "".join(body)

    @staticmethod
    def _parameters(params: str) -> List[Parameter]:
        parameters = []
        for part in split_top_level(params):
            cleaned = _ANNOTATION.sub("", part)
            cleaned = re.sub(r"\b(?:vararg|noinline|crossinline|val|var)\b", "", cleaned).strip()
            match = _PARAMETER.match(cleaned)
            if not match:
                continue
            type_text = match.group(2).split("=")[0]
            parameters.append(Parameter(name=match.group(1), type=" ".join(type_text.split())))
        return parameters

    @staticmethod
    def _extract_calls(body: str) -> List[str]:
        """Call targets in a method body, in source order; repeated call sites are kept."""
        calls = []
        for match in _RECEIVER_CALL.finditer(body):
            receiver = "" if match.group(1) == "this" else match.group(1)
            calls.append((match.start(), qualify_call(receiver, match.group(2))))
        for match in _BARE_CALL.finditer(body):
            name = match.group(1)
            if name in RESERVED_WORDS or name[0].isdigit():
                continue
            calls.append((match.start(), name))
        calls.sort(key=lambda call: call[0])
        return [target for _, target in calls]

    # Fields

    @staticmethod
    def _depth_index(masked: str) -> List[int]:
        """Brace depth before each character offset."""
        depth = [0] * (len(masked) + 1)
        current = 0
        for i, c in enumerate(masked):
            depth[i] = current
            if c == "{":
                current += 1
            elif c == "}":
                current = max(0, current - 1)
        depth[len(masked)] = current
        return depth

    def _extract_fields(
        self,
        masked: str,
        newlines: List[int],
        depth: List[int],
        declaration: _Declaration,
        declarations: List[_Declaration],
    ) -> List[FieldDescriptor]:
        if declaration.body_start is None or declaration.body_end is None:
            return []
        start, end = declaration.body_start + 1, declaration.body_end
        body_depth = depth[start]
        nested = [
            other
            for other in declarations
            if other is not declaration and start <= other.start <= end
        ]

        fields = []
        for match in _FIELD.finditer(masked, start, end):
            pos = match.start()
            if depth[pos] != body_depth:
                continue
            if any(other.contains(pos) for other in nested):
                continue
            type_text = " ".join(match.group(2).split())
            line = bisect.bisect_right(newlines, pos) + 1
            fields.append(FieldDescriptor.from_type(match.group(1), type_text, line))
        return fields

    @staticmethod
    def _constructor_fields(declaration: _Declaration) -> List[FieldDescriptor]:
        fields = []
        for part in split_top_level(declaration.constructor_params):
            if not re.search(r"\b(?:val|var)\b", part):
                continue
            match = _CONSTRUCTOR_FIELD.search(part)
            if not match:
                continue
            type_text = " ".join(match.group(2).split("=")[0].split())
            fields.append(FieldDescriptor.from_type(match.group(1), type_text, declaration.line))
        return fields

    # Top-level functions

    def _file_facade(
        self,
        masked: str,
        file_path: str,
        package_name: str,
        top_level: List[_Function],
        all_functions: List[_Function],
    ) -> ClassDescriptor:
        """Group top-level functions under the JVM facade class ``<FileStem>Kt``."""
        stem = Path(file_path).stem
        name = f"{stem[:1].upper()}{stem[1:]}Kt"
        qname = qualified_name(package_name, name)
        methods = self._build_methods(masked, top_level, all_functions, qname)
        return ClassDescriptor(
            name=name,
            qualified_name=qname,
            file_path=file_path,
            package_name=package_name,
            methods=methods,
            is_composable=any("Composable" in method.annotations for method in methods),
        )
