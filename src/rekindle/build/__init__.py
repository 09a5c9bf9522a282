"""Authoring side — compile instrumentation, change detection and dispatch.

Connects source changes to reload commands through the dependency graph,
the change detector and the evaluation channel.
"""

from rekindle.build.changes import ChangeDetector
from rekindle.build.dispatcher import ReloadDispatcher
from rekindle.build.graph import DependencyGraph
from rekindle.build.instrument import BuildInstrument, BuildState, CompileMetadata
from rekindle.build.plan import Eligibility, ReloadPlan
from rekindle.build.session import Compiler, HotloadSession
from rekindle.build.units import SourceUnit, munge

__all__ = [
    "BuildInstrument",
    "BuildState",
    "ChangeDetector",
    "CompileMetadata",
    "Compiler",
    "DependencyGraph",
    "Eligibility",
    "HotloadSession",
    "ReloadDispatcher",
    "ReloadPlan",
    "SourceUnit",
    "munge",
]
