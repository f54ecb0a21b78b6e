# Context-composition engine
from .order_resolver import (
    OrderResolver,
    OrderResolution,
    TemplateOrderRegistry,
    first_match,
    longest_match,
    normalize_template_name,
)
from .causality import CausalEntry, CausalityLoader, CausalitySource, ProjectStore
from .context_chain import (
    ContextChain,
    ContextNode,
    StoryContext,
    StructureContext,
    ActContext,
    PlotPointsContext,
    SceneContext,
)
from .prompt_assembler import PromptAssembler, assemble, HANDOFF_MARKER
from . import distribution

__all__ = [
    "OrderResolver",
    "OrderResolution",
    "TemplateOrderRegistry",
    "first_match",
    "longest_match",
    "normalize_template_name",
    "CausalEntry",
    "CausalityLoader",
    "CausalitySource",
    "ProjectStore",
    "ContextChain",
    "ContextNode",
    "StoryContext",
    "StructureContext",
    "ActContext",
    "PlotPointsContext",
    "SceneContext",
    "PromptAssembler",
    "assemble",
    "HANDOFF_MARKER",
    "distribution",
]
