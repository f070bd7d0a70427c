"""Label selector compilation and matching."""

from pool_controller.exceptions import InvalidSelectorError
from pool_controller.models.pool import LabelSelector, LabelSelectorRequirement

OPERATOR_IN = "In"
OPERATOR_NOT_IN = "NotIn"
OPERATOR_EXISTS = "Exists"
OPERATOR_DOES_NOT_EXIST = "DoesNotExist"

_VALUED_OPERATORS = (OPERATOR_IN, OPERATOR_NOT_IN)
_UNVALUED_OPERATORS = (OPERATOR_EXISTS, OPERATOR_DOES_NOT_EXIST)


class Selector:
    """A compiled label selector.

    Compiled from a pool's ``LabelSelector``. A missing or empty selector compiles
    to one that matches nothing; callers that need to reject the "select
    everything" case check ``LabelSelector.is_empty()`` before compiling.
    """

    def __init__(self, requirements: list[LabelSelectorRequirement]):
        self.requirements = requirements

    def empty(self) -> bool:
        return not self.requirements

    def matches(self, labels: dict[str, str]) -> bool:
        """Check whether a label set satisfies every requirement."""
        if self.empty():
            return False
        return all(_requirement_matches(r, labels) for r in self.requirements)

    def to_label_selector_string(self) -> str:
        """Render in the ``k=v,k in (a,b),!k`` form accepted by list calls."""
        parts = []
        for r in self.requirements:
            if r.operator == OPERATOR_IN and len(r.values) == 1:
                parts.append(f"{r.key}={r.values[0]}")
            elif r.operator == OPERATOR_IN:
                parts.append(f"{r.key} in ({','.join(sorted(r.values))})")
            elif r.operator == OPERATOR_NOT_IN:
                parts.append(f"{r.key} notin ({','.join(sorted(r.values))})")
            elif r.operator == OPERATOR_EXISTS:
                parts.append(r.key)
            else:
                parts.append(f"!{r.key}")
        return ",".join(parts)

    def __repr__(self) -> str:
        return f"Selector({self.to_label_selector_string()!r})"


def _requirement_matches(requirement: LabelSelectorRequirement, labels: dict[str, str]) -> bool:
    present = requirement.key in labels
    if requirement.operator == OPERATOR_IN:
        return present and labels[requirement.key] in requirement.values
    if requirement.operator == OPERATOR_NOT_IN:
        return not present or labels[requirement.key] not in requirement.values
    if requirement.operator == OPERATOR_EXISTS:
        return present
    return not present


def compile_selector(selector: LabelSelector | None) -> Selector:
    """Compile a pool's node selector.

    Args:
        selector: The selector from the pool spec, or None

    Returns:
        Compiled Selector

    Raises:
        InvalidSelectorError: If an expression has an unknown operator or the
            wrong number of values for its operator
    """
    if selector is None:
        return Selector([])

    requirements = [
        LabelSelectorRequirement(key=key, operator=OPERATOR_IN, values=[value])
        for key, value in sorted(selector.match_labels.items())
    ]

    for expr in selector.match_expressions:
        if not expr.key:
            raise InvalidSelectorError("invalid label selector: expression key cannot be empty")
        if expr.operator in _VALUED_OPERATORS:
            if not expr.values:
                raise InvalidSelectorError(
                    f"invalid label selector: operator {expr.operator} on '{expr.key}' "
                    "requires at least one value"
                )
        elif expr.operator in _UNVALUED_OPERATORS:
            if expr.values:
                raise InvalidSelectorError(
                    f"invalid label selector: operator {expr.operator} on '{expr.key}' "
                    "must not have values"
                )
        else:
            raise InvalidSelectorError(
                f"invalid label selector: unknown operator '{expr.operator}'",
                f"Supported operators: {', '.join(_VALUED_OPERATORS + _UNVALUED_OPERATORS)}",
            )
        requirements.append(expr)

    return Selector(requirements)
