__version__ = "0.1.0"

from .catalog import build_catalog
from .config import RunConfig
from .dag import build_graph, execution_order, topological_order
from .loader import discover_jobs
from .model import JobDescriptor, ResolvedVariables, VariableCatalog, VariableSpec
from .resolver import Resolver, resolve_variables
from .runner import RunResult, run_all, run_jobs

__all__ = [
    "build_catalog",
    "RunConfig",
    "build_graph",
    "execution_order",
    "topological_order",
    "discover_jobs",
    "JobDescriptor",
    "ResolvedVariables",
    "VariableCatalog",
    "VariableSpec",
    "Resolver",
    "resolve_variables",
    "RunResult",
    "run_all",
    "run_jobs",
]
