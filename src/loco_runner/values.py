"""Value comparison utilities for expectations.

This module defines the two comparison semantics used by the assertion
library:

- identity: the same object, or two scalars of the exact same type with
  equal values (no implicit coercion between `int`, `float` and `bool`);
- structural equality: recursive comparison of containers and plain
  objects, falling back to identity for scalars.

It also provides a display helper that turns arbitrary runtime values
into YAML-safe structures for error snippets.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

#: A value in runtime represents any Python object produced by the
#: script under test.
type RuntimeValue = Any

MAPPINGS = (dict,)
SCALARS = (str, bytes, int, float, complex, bool, Decimal, date, datetime, time, timedelta)
SEQUENCES = (list, tuple)
SETS = (set, frozenset)

#: Scalars that PyYAML can dump without custom representers.
_YAML_SCALARS = (str, bytes, int, float, bool, date, datetime)


def is_identical(actual: RuntimeValue, expected: RuntimeValue) -> bool:
    """Check two values for identity without implicit coercion.

    Args:
        actual: Value produced by the script.
        expected: Value the script expects.

    Returns:
        True if both are the same object, or both are scalars of exactly
        the same type with equal values.
    """
    if actual is expected:
        return True

    if isinstance(expected, SCALARS):
        return type(actual) is type(expected) and actual == expected

    return False


def deep_equal(actual: RuntimeValue, expected: RuntimeValue,
               _seen: set[tuple[int, int]] | None = None) -> bool:
    """Recursively compare two values structurally.

    Mappings must have the same keys with structurally equal values,
    sequences the same length with pairwise equal items, sets must be
    equal, and plain objects must share a type and equal attributes.
    Container types must match exactly: a list never equals a tuple.

    Args:
        actual: Value produced by the script.
        expected: Value the script expects.

    Returns:
        True if the values are structurally equal.
    """
    if is_identical(actual, expected):
        return True

    if type(actual) is not type(expected) or isinstance(expected, SCALARS):
        return False

    if _seen is None:
        _seen = set()

    marker = (id(actual), id(expected))
    if marker in _seen:
        return True
    _seen.add(marker)

    if isinstance(expected, MAPPINGS):
        return actual.keys() == expected.keys() and all(
            deep_equal(actual[key], value, _seen)
            for key, value in expected.items()
        )

    if isinstance(expected, SEQUENCES):
        return len(actual) == len(expected) and all(
            deep_equal(actual_item, expected_item, _seen)
            for actual_item, expected_item in zip(actual, expected, strict=True)
        )

    if isinstance(expected, SETS):
        return actual == expected

    if hasattr(expected, '__dict__') and not callable(expected):
        return deep_equal(vars(actual), vars(expected), _seen)

    return bool(actual == expected)


def displayable(value: RuntimeValue) -> RuntimeValue:
    """Recursively convert a value into a YAML-safe structure.

    Containers are rebuilt item by item; anything PyYAML can not dump
    safely is replaced with its `repr`.

    Args:
        value: Arbitrary value to convert.

    Returns:
        A structure made of dicts, lists, and YAML-safe scalars.
    """
    if value is None or isinstance(value, _YAML_SCALARS):
        return value

    if isinstance(value, MAPPINGS):
        return {
            key if isinstance(key, _YAML_SCALARS) else repr(key): displayable(item)
            for key, item in value.items()
        }

    if isinstance(value, SEQUENCES):
        return [displayable(item) for item in value]

    return repr(value)
