"""Generation pipeline.

One run reads the semantic model and produces every generated unit:

* pass 1 rewrites all controllers in discovery order and, in multi-file
  mode, flushes one unit per originating source file;
* pass 2 groups the controllers by namespace, builds the registry class
  and assembles the aggregate unit at the project root, then writes the
  rewritten controller sources.

All state of a run lives in a GenerationAccumulator owned by that run.
"""

import logging
import os
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from ..config import Settings
from ..constants import AGGREGATE_FILE_NAME, GENERATED_FILE_SUFFIX
from ..diagnostics import Diagnostic, DiagnosticKind
from ..semantic import SemanticModel
from .assembler import EmissionAssembler
from .companion import CompanionGenerator
from .models import GeneratedUnit, GenerationResult, RewrittenHandler, SourceEdit, SourceRewrite
from .persistence import FilePersistService
from .rewriter import HandlerRewriter, apply_source_edits
from .static_files import generate_static_files
from .syntax import Member, NamespaceDeclaration

logger = logging.getLogger(__name__)

StaticFilesCollaborator = Callable[[Settings, str], Optional[NamespaceDeclaration]]


@dataclass
class GenerationAccumulator:
    """Everything one run has produced so far."""
    handlers: List[RewrittenHandler] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    units: List[GeneratedUnit] = field(default_factory=list)
    registry_names: Dict[str, str] = field(default_factory=dict)
    registry_fields: List[str] = field(default_factory=list)
    source_rewrites: List[SourceRewrite] = field(default_factory=list)

    def add_diagnostics(self, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics.extend(diagnostics)

    def freeze(self) -> GenerationResult:
        return GenerationResult(
            handlers=tuple(self.handlers),
            units=tuple(self.units),
            source_rewrites=tuple(self.source_rewrites),
            diagnostics=tuple(self.diagnostics),
            registry_fields=tuple(self.registry_fields),
        )


class LinkGenerator:
    """Runs controller rewriting and link generation for one project.

    Args:
        settings: Validated generator settings
        persist_service: Writes finished units; defaults to FilePersistService
        static_files: Static-asset collaborator; defaults to generate_static_files
    """

    def __init__(
        self,
        settings: Settings,
        persist_service: Optional[FilePersistService] = None,
        static_files: Optional[StaticFilesCollaborator] = None,
    ):
        self.settings = settings
        self.persist_service = persist_service or FilePersistService()
        self.static_files = static_files or generate_static_files
        self.companions = CompanionGenerator(settings)
        self.assembler = EmissionAssembler(settings)

    def generate(self, model: SemanticModel, project_root: str, write: bool = True) -> GenerationResult:
        """Generate all units for ``model``.

        Args:
            model: Semantic model of the project
            project_root: Directory the aggregate unit is written to; source
                paths of the model are relative to it
            write: Persist units and source rewrites; False computes only

        Returns:
            GenerationResult with units in the order they were produced

        Raises:
            PersistenceError: If a file cannot be written
        """
        acc = GenerationAccumulator()

        handlers, discovery = model.discover_handlers()
        for diagnostic in discovery:
            logger.warning(str(diagnostic))
        acc.add_diagnostics(discovery)

        # Pass 1: rewrite every controller, flush per-file units
        rewriter = HandlerRewriter(model, [h.qualified_name for h in handlers])
        for symbol in handlers:
            rewritten = rewriter.rewrite(symbol)
            acc.handlers.append(rewritten)
            acc.add_diagnostics(rewritten.diagnostics)
        self._assign_registry_names(acc)

        if self.settings.split_into_multiple_files:
            for file_path, group in _group_by(acc.handlers, lambda h: h.file_path).items():
                unit = self.assembler.handler_unit(self._namespace_members(group, acc))
                path = os.path.join(project_root, os.path.splitext(file_path)[0] + GENERATED_FILE_SUFFIX)
                self._emit(acc, GeneratedUnit(path=path, text=self.assembler.finish(unit)), write)

        # Pass 2: registry and aggregate unit
        namespaces: List[Member] = []
        if not self.settings.split_into_multiple_files:
            namespaces = self._namespace_members(acc.handlers, acc)
        registry = [
            self.companions.registry_field(h, acc.registry_names[h.qualified_name])
            for h in self._registry_order(acc.handlers)
        ]
        acc.registry_fields = [entry.text for entry in registry]
        static_node = self.static_files(self.settings, project_root)
        aggregate = self.assembler.aggregate_unit(namespaces, static_node, registry)
        self._emit(
            acc,
            GeneratedUnit(
                path=os.path.join(project_root, AGGREGATE_FILE_NAME),
                text=self.assembler.finish(aggregate),
                is_aggregate=True,
            ),
            write,
        )

        acc.source_rewrites = self._source_rewrites(acc.handlers, model, project_root)
        if write and self.settings.rewrite_handler_sources:
            for rewrite in acc.source_rewrites:
                self.persist_service.write_file(rewrite.data, rewrite.path)

        result = acc.freeze()
        logger.info(
            f"Generated links for {len(result.handlers)} controllers: "
            f"{len(result.units)} units, {len(result.diagnostics)} diagnostics"
        )
        return result

    def _emit(self, acc: GenerationAccumulator, unit: GeneratedUnit, write: bool) -> None:
        acc.units.append(unit)
        if write:
            self.persist_service.write_file(unit.text, unit.path)

    # =========================================================================
    # Grouping
    # =========================================================================

    @staticmethod
    def _registry_order(handlers: Sequence[RewrittenHandler]) -> List[RewrittenHandler]:
        """Concrete controllers, namespace groups in first-seen order."""
        ordered = []
        for group in _group_by(handlers, lambda h: h.namespace).values():
            ordered.extend(h for h in group if not h.is_abstract)
        return ordered

    def _assign_registry_names(self, acc: GenerationAccumulator) -> None:
        taken = {self.settings.naming_prefix}
        for handler in self._registry_order(acc.handlers):
            name = handler.name
            suffix = 0
            while name in taken:
                suffix += 1
                name = f"{handler.name}{suffix}"
            if suffix:
                diagnostic = Diagnostic(
                    kind=DiagnosticKind.DUPLICATE_NAME,
                    subject=handler.qualified_name,
                    message=f"registry name '{handler.name}' already taken, using '{name}'",
                    file_path=handler.file_path,
                    line=handler.symbol.start_line,
                )
                logger.warning(str(diagnostic))
                acc.diagnostics.append(diagnostic)
            taken.add(name)
            acc.registry_names[handler.qualified_name] = name

    def _namespace_members(
        self, handlers: Sequence[RewrittenHandler], acc: GenerationAccumulator
    ) -> List[Member]:
        """Generated declarations of ``handlers``, one namespace per group."""
        members: List[Member] = []
        for namespace, group in _group_by(handlers, lambda h: h.namespace).items():
            declarations: List[Member] = []
            usings: List[str] = []
            for handler in group:
                declarations.append(self.companions.generate_partial_handler(
                    handler, acc.registry_names.get(handler.qualified_name)
                ))
                if not handler.is_abstract:
                    declarations.append(self.companions.generate_companion(handler))
                usings.extend(handler.usings)
            if namespace:
                node = NamespaceDeclaration(namespace, members=tuple(declarations))
                members.append(node.add_usings(usings))
            else:
                members.extend(declarations)
        return members

    @staticmethod
    def _source_rewrites(
        handlers: Sequence[RewrittenHandler], model: SemanticModel, project_root: str
    ) -> List[SourceRewrite]:
        edits: "OrderedDict[str, List[SourceEdit]]" = OrderedDict()
        for handler in handlers:
            for edit in handler.source_edits:
                edits.setdefault(edit.file_path, []).append(edit)

        sources = model.sources
        rewrites = []
        for file_path, file_edits in edits.items():
            data = apply_source_edits(sources[file_path], file_edits)
            rewrites.append(SourceRewrite(path=os.path.join(project_root, file_path), data=data))
        return rewrites


def _group_by(items, key) -> "OrderedDict":
    """Group ``items`` by ``key`` keeping first-seen order of groups and items."""
    groups: "OrderedDict" = OrderedDict()
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def generate_links(
    project_root: str,
    settings: Settings,
    persist_service: Optional[FilePersistService] = None,
    write: bool = True,
) -> GenerationResult:
    """Parse the C# sources below ``project_root`` and generate their links."""
    model = SemanticModel.from_directory(project_root)
    return LinkGenerator(settings, persist_service).generate(model, project_root, write=write)
