"""Scope-path table: how each entity type reaches its tenant.

Every scoped entity type has exactly one ScopeRule. A rule says whether the
entity carries company_id/branch_id itself ("own columns") or inherits them
from a parent reached through a chain of many-to-one relationships
("via parent"), and whether the entity issues reference numbers.

Paths are relationship attributes, not strings, so a typo fails at import:

    registry.register(Invoice, ScopePath.own(), sequenced=True)
    registry.register(Box, ScopePath.via(Box.project), sequenced=True)
    registry.register(BoxItem, ScopePath.via(BoxItem.box, Box.project))
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from sqlalchemy import inspect
from sqlalchemy.orm import RelationshipDirection
from sqlalchemy.orm.attributes import QueryableAttribute

from ..errors import ConfigurationError

TENANT_COLUMNS = ("company_id", "branch_id")
REFERENCE_COLUMN = "reference_number"


class SequenceLevel(str, Enum):
    """Granularity of a reference-number sequence"""
    COMPANY = "company"  # one sequence per company
    BRANCH = "branch"  # one sequence per (company, branch); branch may be NULL


def _has_column(model: type, name: str) -> bool:
    return name in inspect(model).column_attrs.keys()


@dataclass(frozen=True)
class ScopePath:
    """Own columns (no hops) or a chain of many-to-one relationships."""
    hops: Tuple[QueryableAttribute, ...] = ()

    @classmethod
    def own(cls) -> "ScopePath":
        return cls()

    @classmethod
    def via(cls, *relationships: QueryableAttribute) -> "ScopePath":
        if not relationships:
            raise ConfigurationError("ScopePath.via() needs at least one relationship")
        return cls(tuple(relationships))

    @property
    def is_own(self) -> bool:
        return not self.hops

    def target(self, model: type) -> type:
        """Model class that owns the tenant columns."""
        if self.is_own:
            return model
        return self.hops[-1].property.mapper.class_

    def describe(self) -> str:
        if self.is_own:
            return "own columns"
        return " -> ".join(f"{hop.class_.__name__}.{hop.key}" for hop in self.hops)


@dataclass(frozen=True)
class ScopeRule:
    """Scoping and sequencing declaration of one entity type."""
    model: type
    path: ScopePath
    sequenced: bool = False
    sequence_level: SequenceLevel = SequenceLevel.COMPANY
    pad_width: Optional[int] = None

    @property
    def entity_type(self) -> str:
        return self.model.__name__

    @property
    def tenant_model(self) -> type:
        return self.path.target(self.model)


class ScopeRegistry:
    """Table of ScopeRules keyed by entity type.

    Adding a scoped entity type is one register() call; call sites never
    branch on the entity type themselves.
    """

    def __init__(self):
        self._rules: Dict[str, ScopeRule] = {}

    def register(
        self,
        model: type,
        path: Optional[ScopePath] = None,
        *,
        sequenced: bool = False,
        sequence_level: SequenceLevel = SequenceLevel.COMPANY,
        pad_width: Optional[int] = None,
    ) -> ScopeRule:
        """Declare how an entity type is scoped.

        Raises:
            ConfigurationError: If the type is already registered, the path is
                not a chain of many-to-one relationships starting at the model,
                the tenant model lacks company_id/branch_id, or a sequenced
                model lacks reference_number
        """
        path = path or ScopePath.own()
        name = model.__name__
        if name in self._rules:
            raise ConfigurationError(f"Entity type {name} is already registered")

        self._validate_path(model, path)

        tenant_model = path.target(model)
        for column in TENANT_COLUMNS:
            if not _has_column(tenant_model, column):
                raise ConfigurationError(
                    f"{tenant_model.__name__} has no {column} column "
                    f"(scope path of {name}: {path.describe()})"
                )

        if sequenced and not _has_column(model, REFERENCE_COLUMN):
            raise ConfigurationError(f"Sequenced entity {name} has no {REFERENCE_COLUMN} column")
        if pad_width is not None and pad_width < 1:
            raise ConfigurationError(f"Pad width of {name} must be at least 1")

        rule = ScopeRule(
            model=model,
            path=path,
            sequenced=sequenced,
            sequence_level=sequence_level,
            pad_width=pad_width,
        )
        self._rules[name] = rule
        return rule

    @staticmethod
    def _validate_path(model: type, path: ScopePath) -> None:
        current = model
        for hop in path.hops:
            prop = getattr(hop, "property", None)
            if prop is None or not hasattr(prop, "direction"):
                raise ConfigurationError(f"{hop!r} is not a relationship attribute")
            if hop.class_ is not current:
                raise ConfigurationError(
                    f"Scope path hop {hop.class_.__name__}.{hop.key} does not start at {current.__name__}"
                )
            if prop.direction is not RelationshipDirection.MANYTOONE:
                raise ConfigurationError(
                    f"Scope path hop {current.__name__}.{hop.key} must be many-to-one"
                )
            current = prop.mapper.class_

    def rule_for(self, entity_type: Union[str, type]) -> ScopeRule:
        """Rule of an entity type (class or class name).

        Raises:
            ConfigurationError: If the entity type was never registered
        """
        name = entity_type if isinstance(entity_type, str) else entity_type.__name__
        rule = self._rules.get(name)
        if rule is None:
            raise ConfigurationError(f"Entity type {name} has no scope rule")
        return rule

    def __contains__(self, entity_type: Union[str, type]) -> bool:
        name = entity_type if isinstance(entity_type, str) else entity_type.__name__
        return name in self._rules
