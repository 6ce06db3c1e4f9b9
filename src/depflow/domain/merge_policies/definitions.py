"""Merge policy names, definition validation and definition equality."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Final

from depflow.domain.errors import MergePolicyConfigurationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from depflow.domain.model import MergePolicyDefinition

ALL_CHECKS_SUCCESSFUL: Final[str] = "AllChecksSuccessful"
STANDARD: Final[str] = "Standard"
NO_EXTRA_COMMITS: Final[str] = "NoExtraCommits"
NO_REQUESTED_CHANGES: Final[str] = "NoRequestedChanges"

IGNORE_CHECKS: Final[str] = "ignoreChecks"

KNOWN_MERGE_POLICIES: Final[tuple[str, ...]] = (
    ALL_CHECKS_SUCCESSFUL,
    STANDARD,
    NO_EXTRA_COMMITS,
    NO_REQUESTED_CHANGES,
)


def validate_merge_policies(definitions: Sequence[MergePolicyDefinition]) -> None:
    """Reject unknown policy names and malformed ``AllChecksSuccessful`` properties."""

    known = {name.casefold() for name in KNOWN_MERGE_POLICIES}
    for definition in definitions:
        name = definition.name.casefold()
        if name == ALL_CHECKS_SUCCESSFUL.casefold():
            _validate_all_checks_successful(definition)
        elif name not in known:
            raise MergePolicyConfigurationError(f"Unknown merge policy '{definition.name}'")


def _validate_all_checks_successful(definition: MergePolicyDefinition) -> None:
    properties = definition.properties
    if not properties:
        return
    if set(properties) != {IGNORE_CHECKS}:
        unexpected = ", ".join(sorted(set(properties) - {IGNORE_CHECKS}))
        raise MergePolicyConfigurationError(
            f"{ALL_CHECKS_SUCCESSFUL} only accepts the '{IGNORE_CHECKS}' property, "
            f"got: {unexpected}"
        )
    ignore_checks = properties[IGNORE_CHECKS]
    if not isinstance(ignore_checks, list | tuple) or not all(
        isinstance(item, str) for item in ignore_checks
    ):
        raise MergePolicyConfigurationError(
            f"'{IGNORE_CHECKS}' of {ALL_CHECKS_SUCCESSFUL} must be a list of check names"
        )


def ignored_checks(definition: MergePolicyDefinition) -> tuple[str, ...] | None:
    raw: Any = definition.properties.get(IGNORE_CHECKS)
    if raw is None:
        return None
    return tuple(str(item) for item in raw)


def merge_policies_equal(left: MergePolicyDefinition, right: MergePolicyDefinition) -> bool:
    """Compare two definitions by name and, for ``AllChecksSuccessful``, ignored checks."""

    name = left.name.casefold()
    if name != right.name.casefold():
        return False

    if name == ALL_CHECKS_SUCCESSFUL.casefold():
        left_checks = ignored_checks(left)
        right_checks = ignored_checks(right)
        if left_checks is None or right_checks is None:
            return left_checks is None and right_checks is None
        return sorted(check.casefold() for check in left_checks) == sorted(
            check.casefold() for check in right_checks
        )

    if name in {known.casefold() for known in KNOWN_MERGE_POLICIES}:
        return True

    raise MergePolicyConfigurationError(f"Unknown merge policy '{left.name}'")


def merge_policy_lists_equal(
    left: Sequence[MergePolicyDefinition],
    right: Sequence[MergePolicyDefinition],
) -> bool:
    if len(left) != len(right):
        return False
    return all(any(merge_policies_equal(item, other) for other in right) for item in left)
