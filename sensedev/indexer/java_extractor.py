"""Java symbol extraction using the tree-sitter Java grammar."""

import logging
import threading
from typing import Any, Iterator, List, Optional

import tree_sitter_java as tsjava
from tree_sitter import Language, Parser

from .grammars import LanguageConfig, get_language_registry
from .models import ClassDescriptor, FieldDescriptor, MethodDescriptor, Parameter
from .symbol_extractors import SymbolExtractor, qualified_name, qualify_call, role_hints

logger = logging.getLogger(__name__)

_TYPE_BOUNDARIES = (
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
)


def _text(node: Any) -> str:
    return node.text.decode("utf-8") if node is not None else ""


def _type_name(node: Any) -> str:
    """Type text with generic arguments stripped (``List<String>`` -> ``List``)."""
    if node is None:
        return ""
    if node.type == "generic_type" and node.named_children:
        return _text(node.named_children[0])
    return _text(node)


class JavaSymbolExtractor(SymbolExtractor):
    """Extract classes, methods and fields from Java source via tree-sitter."""

    def __init__(self, lang_config: Optional[LanguageConfig] = None):
        super().__init__("java")
        self.lang_config = lang_config or get_language_registry().get_language_config("java")
        self.ts_language = Language(tsjava.language())
        # tree-sitter parsers are not thread-safe; keep one per worker thread
        self._local = threading.local()

    def _parser(self) -> Parser:
        parser = getattr(self._local, "parser", None)
        if parser is None:
            parser = Parser()
            parser.language = self.ts_language
            self._local.parser = parser
        return parser

    def _node_types(self, role: str, default: List[str]) -> List[str]:
        if self.lang_config is None:
            return default
        return self.lang_config.get_node_types(role) or default

    def extract_source(self, source: str, file_path: str) -> List[ClassDescriptor]:
        tree = self._parser().parse(source.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            logger.warning(f"Syntax errors in {file_path}, extracting best-effort")

        package_name = self._package_name(root)
        class_types = self._node_types("class", ["class_declaration", "interface_declaration"])

        classes = []
        for node in self._walk(root):
            if node.type not in class_types:
                continue
            name_node = node.child_by_field_name("name")
            if name_node is None:
                continue
            try:
                classes.append(self._build_class(node, _text(name_node), file_path, package_name))
            except Exception as e:
                logger.warning(f"Skipping class {_text(name_node)} in {file_path}: {e}")
        return classes

    @staticmethod
    def _walk(node: Any) -> Iterator[Any]:
        """Pre-order traversal without recursion."""
        stack = [node]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(current.children))

    def _package_name(self, root: Any) -> str:
        package_types = self._node_types("package", ["package_declaration"])
        for child in root.children:
            if child.type in package_types:
                for part in child.named_children:
                    if part.type in ("scoped_identifier", "identifier"):
                        return _text(part)
        return ""

    def _build_class(
        self, node: Any, name: str, file_path: str, package_name: str
    ) -> ClassDescriptor:
        super_class = None
        superclass_node = node.child_by_field_name("superclass")
        if superclass_node is not None and superclass_node.named_children:
            super_class = _type_name(superclass_node.named_children[0])

        interfaces = []
        for child in node.children:
            if child.type in ("super_interfaces", "extends_interfaces"):
                for type_list in child.named_children:
                    if type_list.type == "type_list":
                        interfaces.extend(_type_name(t) for t in type_list.named_children)

        qname = qualified_name(package_name, name)
        body = node.child_by_field_name("body")
        method_types = self._node_types("method", ["method_declaration"])
        field_types = self._node_types("field", ["field_declaration"])
        methods = []
        fields = []
        if body is not None:
            for member in self._members(body):
                if member.type in method_types:
                    method = self._build_method(member, qname)
                    if method is not None:
                        methods.append(method)
                elif member.type in field_types and member.parent == body:
                    fields.extend(self._build_fields(member))

        annotations = {a for m in methods for a in m.annotations}
        return ClassDescriptor(
            name=name,
            qualified_name=qname,
            file_path=file_path,
            package_name=package_name,
            super_class=super_class,
            interfaces=interfaces,
            methods=methods,
            fields=fields,
            is_composable="Composable" in annotations,
            **role_hints(super_class),
        )

    def _members(self, body: Any) -> Iterator[Any]:
        """Method and field declarations of a class body, anonymous class bodies included.

        The walk does not enter nested named types; those are classes of
        their own.
        """
        stack = list(reversed(body.children))
        while stack:
            node = stack.pop()
            if node.type in _TYPE_BOUNDARIES:
                continue
            if node.type in ("method_declaration", "field_declaration"):
                yield node
            stack.extend(reversed(node.children))

    def _build_method(self, node: Any, class_qname: str) -> Optional[MethodDescriptor]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = _text(name_node)

        parameters = []
        params_node = node.child_by_field_name("parameters")
        if params_node is not None:
            for param in params_node.named_children:
                if param.type not in ("formal_parameter", "spread_parameter"):
                    continue
                param_name = param.child_by_field_name("name")
                param_type = param.child_by_field_name("type")
                if param.type == "spread_parameter":
                    declarator = next(
                        (c for c in param.named_children if c.type == "variable_declarator"), None
                    )
                    param_name = declarator.child_by_field_name("name") if declarator else None
                    param_type = next(
                        (
                            c
                            for c in param.named_children
                            if c.type not in ("modifiers", "variable_declarator")
                        ),
                        None,
                    )
                if param_name is not None:
                    parameters.append(Parameter(name=_text(param_name), type=_text(param_type)))

        body = node.child_by_field_name("body")
        return MethodDescriptor(
            name=name,
            qualified_name=f"{class_qname}.{name}",
            return_type=_text(node.child_by_field_name("type")) or "void",
            line_number=node.start_point[0] + 1,
            parameters=parameters,
            calls_to=self._extract_calls(body) if body is not None else [],
            annotations=self._annotations(node),
        )

    @staticmethod
    def _annotations(node: Any) -> List[str]:
        names = []
        for child in node.children:
            if child.type != "modifiers":
                continue
            for modifier in child.named_children:
                if modifier.type in ("marker_annotation", "annotation"):
                    name = _text(modifier.child_by_field_name("name"))
                    names.append(name.rsplit(".", 1)[-1])
        return names

    def _extract_calls(self, body: Any) -> List[str]:
        """Call targets in source order, skipping nested method bodies."""
        call_types = self._node_types("call", ["method_invocation"])
        creation_types = self._node_types("creation", ["object_creation_expression"])

        calls = []
        stack = [body]
        while stack:
            node = stack.pop()
            if node is not body and node.type == "method_declaration":
                continue
            if node.type in _TYPE_BOUNDARIES:
                continue
            if node.type in call_types:
                target = self._call_target(node)
                if target:
                    calls.append(target)
            elif node.type in creation_types:
                created = _type_name(node.child_by_field_name("type"))
                if created:
                    calls.append(created)
            stack.extend(reversed(node.children))
        return calls

    @staticmethod
    def _call_target(node: Any) -> Optional[str]:
        name_node = node.child_by_field_name("name")
        if name_node is None:
            return None
        name = _text(name_node)
        receiver = node.child_by_field_name("object")

        if receiver is None or receiver.type == "this":
            return name
        if receiver.type == "identifier":
            return qualify_call(_text(receiver), name)
        if receiver.type == "field_access":
            inner = receiver.child_by_field_name("object")
            field_node = receiver.child_by_field_name("field")
            if inner is not None and inner.type == "this" and field_node is not None:
                return qualify_call(_text(field_node), name)
        # Chained or computed receivers carry no usable class hint
        return qualify_call("", name)

    @staticmethod
    def _build_fields(node: Any) -> List[FieldDescriptor]:
        type_text = _text(node.child_by_field_name("type"))
        fields = []
        for child in node.named_children:
            if child.type != "variable_declarator":
                continue
            name_node = child.child_by_field_name("name")
            if name_node is not None:
                fields.append(
                    FieldDescriptor.from_type(_text(name_node), type_text, child.start_point[0] + 1)
                )
        return fields
