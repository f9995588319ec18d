"""Data models for extracted source symbols."""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, List, Optional


def known_fields(cls: type, data: Dict[str, Any]) -> Dict[str, Any]:
    """Keep only the keys of ``data`` that are fields of dataclass ``cls``.

    Used by every ``from_dict`` so that documents written by a newer or older
    version load without errors.
    """
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass(frozen=True)
class Parameter:
    """A declared method parameter."""

    name: str
    type: str

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Parameter":
        return cls(**known_fields(cls, data))


@dataclass(frozen=True)
class MethodDescriptor:
    """A method/function declared by a class."""

    name: str
    qualified_name: str
    return_type: str
    line_number: int = 0
    parameters: List[Parameter] = field(default_factory=list)
    calls_to: List[str] = field(default_factory=list)  # raw call targets, "name" or "receiver.name"
    annotations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "qualified_name": self.qualified_name,
            "return_type": self.return_type,
            "line_number": self.line_number,
            "parameters": [p.to_dict() for p in self.parameters],
            "calls_to": list(self.calls_to),
            "annotations": list(self.annotations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MethodDescriptor":
        values = known_fields(cls, data)
        values["parameters"] = [Parameter.from_dict(p) for p in values.get("parameters", [])]
        return cls(**values)


@dataclass(frozen=True)
class FieldDescriptor:
    """A field/property declared by a class."""

    name: str
    type: str
    is_live_data: bool = False
    is_state_flow: bool = False
    is_flow: bool = False
    line_number: int = 0

    @classmethod
    def from_type(cls, name: str, type_text: str, line_number: int = 0) -> "FieldDescriptor":
        """Build a field, deriving the reactive flags from the type text."""
        return cls(
            name=name,
            type=type_text,
            is_live_data="LiveData" in type_text,
            is_state_flow="StateFlow" in type_text,
            is_flow="Flow" in type_text,
            line_number=line_number,
        )

    @property
    def is_reactive(self) -> bool:
        return self.is_live_data or self.is_state_flow or self.is_flow

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "is_live_data": self.is_live_data,
            "is_state_flow": self.is_state_flow,
            "is_flow": self.is_flow,
            "line_number": self.line_number,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldDescriptor":
        return cls(**known_fields(cls, data))


@dataclass(frozen=True)
class ClassDescriptor:
    """A class (or object/interface) extracted from one source file."""

    name: str
    qualified_name: str
    file_path: str
    package_name: str
    super_class: Optional[str] = None
    interfaces: List[str] = field(default_factory=list)
    methods: List[MethodDescriptor] = field(default_factory=list)
    fields: List[FieldDescriptor] = field(default_factory=list)
    is_activity: bool = False
    is_fragment: bool = False
    is_view_model: bool = False
    is_composable: bool = False

    def has_method(self, method_name: str) -> bool:
        return any(method.name == method_name for method in self.methods)

    def find_field(self, field_name: str) -> Optional[FieldDescriptor]:
        for field_symbol in self.fields:
            if field_symbol.name == field_name:
                return field_symbol
        return None

    def all_calls(self) -> List[str]:
        """Call targets of every method, in declaration order."""
        return [call for method in self.methods for call in method.calls_to]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "qualified_name": self.qualified_name,
            "file_path": self.file_path,
            "package_name": self.package_name,
            "super_class": self.super_class,
            "interfaces": list(self.interfaces),
            "methods": [m.to_dict() for m in self.methods],
            "fields": [f.to_dict() for f in self.fields],
            "is_activity": self.is_activity,
            "is_fragment": self.is_fragment,
            "is_view_model": self.is_view_model,
            "is_composable": self.is_composable,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClassDescriptor":
        values = known_fields(cls, data)
        values["methods"] = [MethodDescriptor.from_dict(m) for m in values.get("methods", [])]
        values["fields"] = [FieldDescriptor.from_dict(f) for f in values.get("fields", [])]
        return cls(**values)


@dataclass
class SymbolTable:
    """Project-wide symbol map built once per analysis run."""

    classes: Dict[str, ClassDescriptor] = field(default_factory=dict)  # qualified name -> class
    files: Dict[str, List[str]] = field(default_factory=dict)  # file path -> qualified names
    _sorted: Optional[List[ClassDescriptor]] = field(
        default=None, init=False, repr=False, compare=False
    )
    _by_simple_name: Optional[Dict[str, ClassDescriptor]] = field(
        default=None, init=False, repr=False, compare=False
    )

    @classmethod
    def build(cls, descriptors: Iterable[ClassDescriptor]) -> "SymbolTable":
        """Aggregate descriptors; a repeated qualified name keeps the last one seen.

        Args:
            descriptors: Classes in deterministic (path-sorted) order

        Returns:
            Populated symbol table
        """
        table = cls()
        for descriptor in descriptors:
            table.classes[descriptor.qualified_name] = descriptor
            table.files.setdefault(descriptor.file_path, []).append(descriptor.qualified_name)
        return table

    def sorted_classes(self) -> List[ClassDescriptor]:
        """Classes ordered by qualified name, the tie-break order for loose lookups."""
        if self._sorted is None:
            self._sorted = [self.classes[name] for name in sorted(self.classes)]
        return self._sorted

    def find_by_name(self, name: str) -> Optional[ClassDescriptor]:
        """Look a class up by qualified name, then by simple name."""
        if not name:
            return None
        found = self.classes.get(name)
        if found is not None:
            return found
        if self._by_simple_name is None:
            index: Dict[str, ClassDescriptor] = {}
            for descriptor in self.sorted_classes():
                index.setdefault(descriptor.name, descriptor)
            self._by_simple_name = index
        return self._by_simple_name.get(name)

    def classes_in_file(self, file_path: str) -> List[ClassDescriptor]:
        return [self.classes[q] for q in self.files.get(file_path, []) if q in self.classes]

    def __len__(self) -> int:
        return len(self.classes)
