"""Tool descriptors, registry and typed tool runs."""

from parley.tools.descriptor import ToolDescriptor, partial_model
from parley.tools.problem import Problem, ToolRunProblem, flatten_details, problem_from_output
from parley.tools.registry import ToolRegistry
from parley.tools.run import ToolRun, UnknownToolRun

__all__ = [
    "Problem",
    "ToolDescriptor",
    "ToolRegistry",
    "ToolRun",
    "ToolRunProblem",
    "UnknownToolRun",
    "flatten_details",
    "partial_model",
    "problem_from_output",
]
