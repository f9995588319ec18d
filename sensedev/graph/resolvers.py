"""Call-target resolution strategies.

Each resolver maps one raw call target of a calling class to the class that
most likely receives the call, or passes (returns ``None``). The dispatcher
tries them in order and the first definite answer wins, so a precise tier
always shadows the looser tiers after it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from ..indexer.models import ClassDescriptor, SymbolTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallTarget:
    """A call target split into optional receiver and method name."""

    receiver: Optional[str]
    method: str

    @classmethod
    def parse(cls, raw: str) -> "CallTarget":
        """Split ``"name"`` or ``"receiver.name"``; the last segment is the method."""
        if "." not in raw:
            return cls(receiver=None, method=raw)
        receiver, method = raw.rsplit(".", 1)
        return cls(receiver=receiver, method=method)

    @property
    def has_receiver(self) -> bool:
        return self.receiver is not None


class CallResolver(ABC):
    """One resolution tier."""

    name = "resolver"

    @abstractmethod
    def resolve(
        self, target: CallTarget, caller: ClassDescriptor, symbols: SymbolTable
    ) -> Optional[ClassDescriptor]:
        """Return the receiving class, or None to pass to the next tier."""
        pass


class SelfMethodResolver(CallResolver):
    """Unqualified call to a method the caller declares itself."""

    name = "self"

    def resolve(self, target, caller, symbols):
        if not target.has_receiver and caller.has_method(target.method):
            return caller
        return None


class DeclaringClassResolver(CallResolver):
    """Unqualified call: the first class, in sorted order, declaring the method."""

    name = "declaring-class"

    def resolve(self, target, caller, symbols):
        if target.has_receiver:
            return None
        for candidate in symbols.sorted_classes():
            if candidate.has_method(target.method):
                return candidate
        return None


class ReceiverClassResolver(CallResolver):
    """Receiver is itself a class name (static call or object)."""

    name = "receiver-class"

    def resolve(self, target, caller, symbols):
        if not target.has_receiver:
            return None
        return symbols.find_by_name(target.receiver)


class ReceiverFieldResolver(CallResolver):
    """Receiver is a field of the caller; resolve through the field's declared type."""

    name = "receiver-field"

    def resolve(self, target, caller, symbols):
        if not target.has_receiver:
            return None
        field_symbol = caller.find_field(target.receiver)
        if field_symbol is None:
            return None

        field_type = field_symbol.type.replace("?", "").strip()
        found = symbols.find_by_name(field_type)
        if found is not None:
            return found

        # One level of generic unwrapping: Holder<Inner> -> Inner
        if "<" in field_type and ">" in field_type:
            inner = field_type[field_type.index("<") + 1 : field_type.rindex(">")]
            for argument in inner.split(","):
                found = symbols.find_by_name(argument.strip())
                if found is not None:
                    return found
        return None


class MethodNameResolver(CallResolver):
    """Loose fallback: any class declaring a method of that name, whatever the receiver."""

    name = "method-name"

    def resolve(self, target, caller, symbols):
        if not target.has_receiver:
            return None
        for candidate in symbols.sorted_classes():
            if candidate.has_method(target.method):
                return candidate
        return None


def default_resolvers() -> List[CallResolver]:
    return [
        SelfMethodResolver(),
        DeclaringClassResolver(),
        ReceiverClassResolver(),
        ReceiverFieldResolver(),
        MethodNameResolver(),
    ]


class ResolverChain:
    """Dispatches a call target through resolvers until one succeeds."""

    def __init__(self, resolvers: Optional[List[CallResolver]] = None):
        self.resolvers = resolvers if resolvers is not None else default_resolvers()

    def resolve(
        self, raw_target: str, caller: ClassDescriptor, symbols: SymbolTable
    ) -> Optional[ClassDescriptor]:
        """Resolve a raw call target of ``caller``.

        Args:
            raw_target: Call target as extracted ("name" or "receiver.name")
            caller: Class whose method makes the call
            symbols: Project symbol table

        Returns:
            Receiving class, or None when no tier matched
        """
        target = CallTarget.parse(raw_target)
        for resolver in self.resolvers:
            found = resolver.resolve(target, caller, symbols)
            if found is not None:
                logger.debug(
                    f"{caller.qualified_name}: '{raw_target}' -> {found.qualified_name} "
                    f"({resolver.name})"
                )
                return found
        logger.debug(f"{caller.qualified_name}: '{raw_target}' unresolved")
        return None
