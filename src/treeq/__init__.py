"""treeq — deterministic canonicalize, diff, validate, and merge for record trees."""

from treeq.domain.canon import canonicalize
from treeq.domain.diff import DiffReport, ValueDiff, diff
from treeq.domain.errors import InternalFault, UsageError
from treeq.domain.merge import PathPolicyOverride, merge
from treeq.domain.paths import ValuePath
from treeq.domain.rules import RuleSet, load_rules
from treeq.domain.types import MergePolicy, TypeTag
from treeq.domain.validate import Mismatch, validate

__version__ = "0.3.0"

__all__ = [
    "DiffReport",
    "InternalFault",
    "MergePolicy",
    "Mismatch",
    "PathPolicyOverride",
    "RuleSet",
    "TypeTag",
    "UsageError",
    "ValueDiff",
    "ValuePath",
    "__version__",
    "canonicalize",
    "diff",
    "load_rules",
    "merge",
    "validate",
]
