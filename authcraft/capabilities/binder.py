"""
Authcraft Capabilities - Entity Capability Binder

Declarative attachment point for entity types:

    @capabilities("confirmable", "recoverable", stretches=12)
    class User(AuthEntity):
        ...

    @capabilities("all", except_=("rememberable",))
    class Admin(AuthEntity):
        ...

Binding resolves the requested capabilities once, merges their options
(registry defaults -> configured defaults -> per-entity overrides),
instantiates one behavior per capability and stores the resulting
``CapabilitySet`` on the type. Introspection afterwards is a dict lookup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, TypeVar, Union

from .faults import AlreadyBound, CapabilityNotActive, MissingOption, UnknownCapability, UnknownOption
from .registry import BASELINE, BehaviorSpec, CapabilityRegistry

logger = logging.getLogger("authcraft.capabilities.binder")

ATTRIBUTE = "__capabilities__"

T = TypeVar("T", bound=type)


# ============================================================================
# Modes
# ============================================================================

@dataclass(frozen=True)
class All:
    """Every registered capability."""


@dataclass(frozen=True)
class Subset:
    """Only the named capabilities (plus the baseline)."""
    names: frozenset[str] = frozenset()

    def __init__(self, names: Iterable[str] = ()):
        if isinstance(names, str):
            names = (names,)
        object.__setattr__(self, "names", frozenset(names))


@dataclass(frozen=True)
class AllExcept:
    """Every registered capability minus the named ones."""
    names: frozenset[str] = frozenset()

    def __init__(self, names: Iterable[str] = ()):
        if isinstance(names, str):
            names = (names,)
        object.__setattr__(self, "names", frozenset(names))


Mode = Union[All, Subset, AllExcept]


# ============================================================================
# Bindings
# ============================================================================

@dataclass(frozen=True)
class CapabilityBinding:
    """Resolved attachment of one capability to one entity type."""
    entity_type: type
    name: str
    options: Mapping[str, Any]
    behavior: Any


class CapabilitySet:
    """
    Capabilities bound to one entity type.

    Built once by the binder; read-only afterwards.
    """

    def __init__(self, entity_type: type, bindings: Iterable[CapabilityBinding]):
        self.entity_type = entity_type
        self._bindings: dict[str, CapabilityBinding] = {b.name: b for b in bindings}

    @property
    def names(self) -> tuple[str, ...]:
        """Bound names, in application order."""
        return tuple(self._bindings)

    def has_capability(self, name: str) -> bool:
        return name in self._bindings

    def capability_option(self, name: str, key: str) -> Any:
        """
        Resolved option value.

        Raises:
            MissingOption: capability not bound or key not recognized
        """
        binding = self._bindings.get(name)
        if binding is None or key not in binding.options:
            raise MissingOption(name, key)
        return binding.options[key]

    def options(self, name: str) -> Mapping[str, Any]:
        return self.binding(name).options

    def binding(self, name: str) -> CapabilityBinding:
        try:
            return self._bindings[name]
        except KeyError:
            raise CapabilityNotActive(name, self.entity_type) from None

    def behavior(self, name: str) -> Any:
        """
        Behavior instance for ``name``.

        Raises:
            CapabilityNotActive: capability not bound on this type
        """
        return self.binding(name).behavior

    def behaviors(self) -> Iterator[Any]:
        for binding in self._bindings.values():
            yield binding.behavior

    def __contains__(self, name: object) -> bool:
        return name in self._bindings

    def __iter__(self) -> Iterator[CapabilityBinding]:
        return iter(self._bindings.values())

    def __len__(self) -> int:
        return len(self._bindings)

    def __repr__(self) -> str:
        return f"<CapabilitySet {self.entity_type.__qualname__} {list(self._bindings)}>"


# ============================================================================
# Binder
# ============================================================================

class CapabilityBinder:
    """
    Resolves a mode plus overrides into a ``CapabilitySet`` and attaches it.

    Args:
        registry: Registry to resolve against (default: built-ins)
        defaults: Capability name -> option overrides applied to every
            entity type (default: ``get_config().capability_defaults``)
    """

    def __init__(
        self,
        registry: CapabilityRegistry | None = None,
        defaults: Mapping[str, Mapping[str, Any]] | None = None,
    ):
        if registry is None:
            from .builtins import default_registry
            registry = default_registry
        self.registry = registry
        self._defaults = defaults

    @property
    def defaults(self) -> Mapping[str, Mapping[str, Any]]:
        if self._defaults is not None:
            return self._defaults
        from ..config import get_config
        return get_config().capability_defaults

    def requested_names(self, mode: Mode) -> set[str]:
        """Apply the mode to the registry, always adding the baseline."""
        registered = set(self.registry.names())

        if isinstance(mode, All):
            requested = registered
        elif isinstance(mode, Subset):
            unknown = mode.names - registered
            if unknown:
                raise UnknownCapability(unknown)
            requested = set(mode.names)
        elif isinstance(mode, AllExcept):
            unknown = mode.names - registered
            if unknown:
                raise UnknownCapability(unknown)
            requested = registered - mode.names
        else:
            raise TypeError(f"Unsupported capability mode: {mode!r}")

        # TODO: opt-out switch for credential-less entity types.
        requested.add(BASELINE)
        return requested

    def bind(
        self,
        entity_type: type,
        mode: Mode | None = None,
        overrides: Mapping[str, Mapping[str, Any]] | None = None,
        **flat_options: Any,
    ) -> CapabilitySet:
        """
        Bind capabilities to ``entity_type``.

        Args:
            entity_type: Type receiving the behaviors
            mode: All(), Subset(names) or AllExcept(names); default All()
            overrides: Capability name -> option overrides
            **flat_options: Options routed to the single bound capability
                recognizing the key (e.g. ``stretches=15``)

        Raises:
            AlreadyBound: type declared its capabilities before
            UnknownCapability: unregistered name in mode, overrides or
                configured defaults
            UnknownOption: unrecognized, ambiguous or misdirected option
        """
        if ATTRIBUTE in vars(entity_type):
            raise AlreadyBound(entity_type)

        defaults = self.defaults
        unregistered = set(defaults) - set(self.registry.names())
        if unregistered:
            raise UnknownCapability(unregistered)

        mode = mode if mode is not None else All()
        specs = self.registry.resolve(self.requested_names(mode))

        per_entity = self._route_options(specs, overrides or {}, flat_options)

        bindings = []
        for spec in specs:
            options = dict(spec.defaults)
            options.update(self._checked(spec, defaults.get(spec.name, {})))
            options.update(per_entity.get(spec.name, {}))

            behavior = spec.implementation(entity_type, options)
            bindings.append(
                CapabilityBinding(
                    entity_type=entity_type,
                    name=spec.name,
                    options=MappingProxyType(options),
                    behavior=behavior,
                )
            )

        capability_set = CapabilitySet(entity_type, bindings)
        setattr(entity_type, ATTRIBUTE, capability_set)

        logger.debug("Bound %s: %s", entity_type.__qualname__, ", ".join(capability_set.names))
        return capability_set

    def _route_options(
        self,
        specs: tuple[BehaviorSpec, ...],
        overrides: Mapping[str, Mapping[str, Any]],
        flat_options: Mapping[str, Any],
    ) -> dict[str, dict[str, Any]]:
        by_name = {spec.name: spec for spec in specs}
        routed: dict[str, dict[str, Any]] = {}

        for name, options in overrides.items():
            if name not in self.registry:
                raise UnknownCapability([name])
            if name not in by_name:
                raise UnknownOption(
                    next(iter(options), "*"), name, reason="capability not bound on this type"
                )
            routed.setdefault(name, {}).update(self._checked(by_name[name], options))

        for key, value in flat_options.items():
            owners = [spec.name for spec in specs if spec.recognizes(key)]
            if not owners:
                raise UnknownOption(key)
            if len(owners) > 1:
                raise UnknownOption(key, reason=f"ambiguous between {', '.join(owners)}")
            routed.setdefault(owners[0], {})[key] = value

        return routed

    @staticmethod
    def _checked(spec: BehaviorSpec, options: Mapping[str, Any]) -> Mapping[str, Any]:
        for key in options:
            if not spec.recognizes(key):
                raise UnknownOption(key, spec.name)
        return options


# ============================================================================
# Declarative front end
# ============================================================================

_default_binder: CapabilityBinder | None = None


def get_binder() -> CapabilityBinder:
    """Get default binder instance."""
    global _default_binder

    if _default_binder is None:
        _default_binder = CapabilityBinder()

    return _default_binder


def bind(
    entity_type: type,
    mode: Mode | None = None,
    overrides: Mapping[str, Mapping[str, Any]] | None = None,
    **flat_options: Any,
) -> CapabilitySet:
    """Bind with the default binder."""
    return get_binder().bind(entity_type, mode, overrides, **flat_options)


def capabilities(
    *names: str,
    except_: Iterable[str] | None = None,
    options: Mapping[str, Mapping[str, Any]] | None = None,
    binder: CapabilityBinder | None = None,
    **flat_options: Any,
) -> Callable[[T], T]:
    """
    Class decorator declaring an entity type's capabilities.

    - ``@capabilities()``: baseline only
    - ``@capabilities("confirmable")``: subset
    - ``@capabilities("all")``: every registered capability
    - ``@capabilities("all", except_=[...])``: all minus exclusions
    """
    if "all" in names:
        if len(names) > 1:
            raise UnknownCapability([n for n in names if n != "all"])
        mode: Mode = AllExcept(except_) if except_ else All()
    else:
        if except_:
            raise TypeError("except_ only applies to capabilities('all')")
        mode = Subset(names)

    def decorator(entity_type: T) -> T:
        (binder or get_binder()).bind(entity_type, mode, options, **flat_options)
        return entity_type

    return decorator


def capability_set_of(entity_type: type) -> CapabilitySet | None:
    """Nearest capability set along the MRO, or None if nothing is bound."""
    for klass in entity_type.__mro__:
        capability_set = vars(klass).get(ATTRIBUTE)
        if capability_set is not None:
            return capability_set
    return None
