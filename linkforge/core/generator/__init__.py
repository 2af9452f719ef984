"""Controller rewriting and link generation.

Public API:
    LinkGenerator(settings).generate(model, project_root) → GenerationResult
    generate_links(project_root, settings) → GenerationResult
    HandlerRewriter(model, handler_names).rewrite(symbol) → RewrittenHandler
"""

from .assembler import EmissionAssembler
from .companion import CompanionGenerator
from .generator import GenerationAccumulator, LinkGenerator, generate_links
from .models import (
    DescriptorCarrier,
    DescriptorKind,
    GeneratedUnit,
    GenerationResult,
    ResultDescriptor,
    RewrittenHandler,
    RoutedMethod,
    SourceEdit,
    SourceRewrite,
)
from .persistence import FilePersistService
from .rewriter import HandlerRewriter, apply_source_edits, area_for_namespace, route_name_for
from .static_files import StaticFileGenerator, generate_static_files

__all__ = [
    "LinkGenerator",
    "GenerationAccumulator",
    "generate_links",
    "HandlerRewriter",
    "CompanionGenerator",
    "EmissionAssembler",
    "StaticFileGenerator",
    "FilePersistService",
    "generate_static_files",
    "apply_source_edits",
    "area_for_namespace",
    "route_name_for",
    "DescriptorCarrier",
    "DescriptorKind",
    "GeneratedUnit",
    "GenerationResult",
    "ResultDescriptor",
    "RewrittenHandler",
    "RoutedMethod",
    "SourceEdit",
    "SourceRewrite",
]
