"""
Validation engine for owner and property records.

Rules follow the same shape as a transformer pipeline: each rule class has
``accepts(prop, owner)`` deciding whether it applies, and ``check(prop,
owner)`` returning the diagnostics it reports. Every rule runs for every
property; nothing short-circuits, so a property with three problems gets
three diagnostics.

================================================================================
PROPERTY RULES
================================================================================

    code    severity  excludes  condition
    DR0007  error     yes       more than one marker declares the same name
    DR0001  error     yes       [DependencyProperty] on a non-auto or non-partial property
    DR0003  error     yes       no accessible getter
    DR0006  error     yes       inherits on a toolkit without inheritance
    DR0011  error     yes       inherits on WPF without a FrameworkElement owner
    DR0013  error     yes       malformed marker arguments
    DR0005  warning   no        default value field neither const nor readonly
    DR0010  warning   no        coerce callback on a toolkit without coercion
    DR0009  warning   no        validate callback on a toolkit other than WPF
    DR0008  warning   no        inherits while not attached
    DR0012  warning   no        unsupported changed handler prototype
    DR0014  warning   no        marker argument matching no parameter
    DR0016  warning   no        default binding mode the toolkit cannot express
    DR0018  warning   no        instance default value field or validate callback

Capability rules (DR0006, DR0011, DR0009, DR0010, DR0016) only run when the
owner's toolkit is known; an unknown toolkit is already an owner error.

================================================================================
OWNER RULES
================================================================================

    DR0002  error    owner is not a partial top-level class
    DR0004  error    owner does not derive from a known toolkit object
    DR0015  error    malformed naming convention marker
    DR0017  warning  convention member without a property (report_orphans only)

Owner errors gate every property of the owner. By default emission is
all-or-nothing: one excluded property blocks the whole owner. With
``emit_partial_owners`` the accepted properties are emitted and the
excluded ones skipped.
"""

import logging
from dataclasses import dataclass, field
from typing import List

import diagnostics as dr
from diagnostics import Diagnostic, diagnostic
from decoration import DecorationKind
from owner_record import OwnerRecord
from property_record import PropertyRecord, PropertySource, decoration_kind_label
from toolkit import ToolkitKind

logger = logging.getLogger(__name__)


def _property_label(prop):
    return prop.name or "<unnamed>"


class DuplicateMarkersRule:
    def accepts(self, prop, owner):
        return prop.has_multiple_markers

    def check(self, prop, owner):
        return [diagnostic(dr.TOO_MANY_MARKERS, prop.location, prop.name, owner.name)]


class PropertyShapeRule:
    """[DependencyProperty] needs a partial auto property to complete."""

    def accepts(self, prop, owner):
        return prop.source is PropertySource.AUTO_PROPERTY

    def check(self, prop, owner):
        if prop.is_auto and prop.is_partial:
            return []
        return [diagnostic(dr.INVALID_PROPERTY, prop.location, prop.name, owner.name)]


class UnreadablePropertyRule:
    def accepts(self, prop, owner):
        return prop.source is PropertySource.AUTO_PROPERTY

    def check(self, prop, owner):
        if not prop.is_unreadable:
            return []
        return [diagnostic(dr.UNREADABLE_PROPERTY, prop.location, prop.name, owner.name)]


class InheritanceRule:
    """
    Inheritance needs toolkit support, and on WPF a FrameworkElement owner:
    only framework metadata carries the Inherits flag.
    """

    def accepts(self, prop, owner):
        return prop.inherits and owner.toolkit is not ToolkitKind.UNKNOWN

    def check(self, prop, owner):
        capabilities = owner.capabilities
        if not capabilities.supports_inheritance:
            return [diagnostic(dr.INHERITANCE_IS_UNSUPPORTED, prop.location, prop.name, owner.name)]
        if capabilities.inheritance_requires_framework_element and not owner.is_framework_element:
            return [diagnostic(dr.INHERITANCE_REQUIRES_FRAMEWORK_ELEMENT, prop.location, prop.name, owner.name)]
        return []


class MarkerArgumentsRule:
    def accepts(self, prop, owner):
        return prop.has_argument_problems

    def check(self, prop, owner):
        problems = "; ".join(prop.argument_problems) or "invalid binding mode"
        return [diagnostic(dr.INVALID_MARKER_ARGUMENTS, prop.location,
                           prop.marker_kind.value, _property_label(prop), owner.name, problems)]


class WritableDefaultValueRule:
    def accepts(self, prop, owner):
        return prop.has_default_value and prop.is_default_value_writable

    def check(self, prop, owner):
        return [diagnostic(dr.DEFAULT_VALUE_IS_WRITABLE, prop.default_value_location,
                           prop.default_value_member or prop.default_value_name, owner.name)]


class CoercionSupportRule:
    def accepts(self, prop, owner):
        return prop.has_coerce_callback and owner.toolkit is not ToolkitKind.UNKNOWN

    def check(self, prop, owner):
        if owner.capabilities.supports_coercion:
            return []
        return [diagnostic(dr.COERCION_IS_UNSUPPORTED, prop.coerce_callback_location, prop.name, owner.name)]


class ValidationSupportRule:
    def accepts(self, prop, owner):
        return prop.has_validate_callback and owner.toolkit is not ToolkitKind.UNKNOWN

    def check(self, prop, owner):
        if owner.capabilities.supports_validation:
            return []
        return [diagnostic(dr.VALIDATION_IS_UNSUPPORTED, prop.validate_callback_location, prop.name, owner.name)]


class StaticMemberRule:
    """
    Registrations are static initializers: they can only reference a static
    default value field and a static validation callback.
    """

    def accepts(self, prop, owner):
        return self._instance_default(prop) or self._instance_validator(prop, owner)

    def check(self, prop, owner):
        found = []
        if self._instance_default(prop):
            found.append(diagnostic(dr.INSTANCE_MEMBER_IS_IGNORED, prop.default_value_location,
                                    prop.default_value_member, owner.name,
                                    decoration_kind_label(DecorationKind.DEFAULT_VALUE), prop.name))
        if self._instance_validator(prop, owner):
            found.append(diagnostic(dr.INSTANCE_MEMBER_IS_IGNORED, prop.validate_callback_location,
                                    prop.validate_callback_name, owner.name,
                                    decoration_kind_label(DecorationKind.VALIDATE_CALLBACK), prop.name))
        return found

    def _instance_default(self, prop):
        return prop.has_default_value and prop.default_value_expression is None and not prop.is_default_value_static

    def _instance_validator(self, prop, owner):
        return (prop.has_validate_callback and not prop.validate_callback_is_static
                and owner.toolkit is not ToolkitKind.UNKNOWN and owner.capabilities.supports_validation)


class NonAttachedInheritanceRule:
    def accepts(self, prop, owner):
        return prop.inherits and not prop.is_attached

    def check(self, prop, owner):
        return [diagnostic(dr.NON_ATTACHED_BUT_INHERITABLE, prop.location, prop.name, owner.name)]


class ChangedHandlerRule:
    def accepts(self, prop, owner):
        return prop.unsupported_handler_location is not None

    def check(self, prop, owner):
        return [diagnostic(dr.UNSUPPORTED_CHANGED_HANDLER, prop.unsupported_handler_location,
                           prop.changed_handler_name, owner.name, prop.type_name)]


class ExtraArgumentRule:
    def accepts(self, prop, owner):
        return prop.extra_argument_location is not None

    def check(self, prop, owner):
        return [diagnostic(dr.UNRECOGNIZED_MARKER_ARGUMENT, prop.extra_argument_location,
                           prop.marker_kind.value, _property_label(prop), owner.name)]


class BindingModeRule:
    def accepts(self, prop, owner):
        return not prop.has_invalid_binding_mode and owner.toolkit is not ToolkitKind.UNKNOWN

    def check(self, prop, owner):
        if owner.capabilities.can_express_binding_mode(prop.binding_mode, owner.is_framework_element):
            return []
        return [diagnostic(dr.BINDING_MODE_IS_UNSUPPORTED, prop.location,
                           prop.binding_mode.member_name, prop.name, owner.name, owner.toolkit.value)]


PROPERTY_RULES = [
    DuplicateMarkersRule(),
    PropertyShapeRule(),
    UnreadablePropertyRule(),
    InheritanceRule(),
    MarkerArgumentsRule(),
    WritableDefaultValueRule(),
    CoercionSupportRule(),
    ValidationSupportRule(),
    StaticMemberRule(),
    NonAttachedInheritanceRule(),
    ChangedHandlerRule(),
    ExtraArgumentRule(),
    BindingModeRule(),
]


def check_owner(owner: OwnerRecord, report_orphans: bool = False) -> List[Diagnostic]:
    found = []
    if not owner.is_partial or not owner.is_class or owner.is_nested:
        found.append(diagnostic(dr.INVALID_OWNER, owner.location, owner.full_name))
    if owner.toolkit is ToolkitKind.UNKNOWN:
        found.append(diagnostic(dr.UNKNOWN_TOOLKIT, owner.location, owner.full_name))
    for problem in owner.decoration_problems:
        found.append(diagnostic(dr.INVALID_NAME_DECORATION, problem.location,
                                problem.kind.marker_name, owner.name, problem.message))
    if report_orphans:
        for fragment in owner.orphans:
            found.append(diagnostic(dr.ORPHAN_CONVENTION_MEMBER, fragment.location, fragment.member_name,
                                    owner.name, decoration_kind_label(fragment.kind), fragment.name))
    return found


@dataclass
class PropertyVerdict:
    property: PropertyRecord
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def accepted(self) -> bool:
        return not any(d.is_error and d.descriptor.excludes for d in self.diagnostics)


@dataclass
class OwnerVerdict:
    owner: OwnerRecord
    property_verdicts: List[PropertyVerdict] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    emit_partial_owners: bool = False

    @property
    def accepted_properties(self) -> List[PropertyRecord]:
        return [v.property for v in self.property_verdicts if v.accepted]

    @property
    def has_owner_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)

    @property
    def should_emit(self) -> bool:
        if self.has_owner_errors or not self.accepted_properties:
            return False
        if self.emit_partial_owners:
            return True
        return all(v.accepted for v in self.property_verdicts)

    @property
    def all_diagnostics(self) -> List[Diagnostic]:
        found = list(self.diagnostics)
        for verdict in self.property_verdicts:
            found.extend(verdict.diagnostics)
        return found


def check_property(prop: PropertyRecord, owner: OwnerRecord) -> PropertyVerdict:
    verdict = PropertyVerdict(prop)
    for rule in PROPERTY_RULES:
        if rule.accepts(prop, owner):
            verdict.diagnostics.extend(rule.check(prop, owner))
    return verdict


def validate_owner(owner: OwnerRecord, emit_partial_owners: bool = False,
                   report_orphans: bool = False) -> OwnerVerdict:
    """
    Validate ``owner`` and its properties.

    An owner without properties is not validated: the verdict carries no
    diagnostics and ``should_emit`` is False.
    """
    verdict = OwnerVerdict(owner, emit_partial_owners=emit_partial_owners)
    if not owner.properties:
        return verdict

    verdict.diagnostics = check_owner(owner, report_orphans)
    verdict.property_verdicts = [check_property(prop, owner) for prop in owner.properties]

    rejected = [_property_label(v.property) for v in verdict.property_verdicts if not v.accepted]
    if rejected:
        logger.debug(f"Rejected properties of {owner.full_name}: {', '.join(rejected)}")
    logger.debug(f"{owner.full_name}: {len(verdict.accepted_properties)} accepted, "
                 f"emit={'yes' if verdict.should_emit else 'no'}")
    return verdict
