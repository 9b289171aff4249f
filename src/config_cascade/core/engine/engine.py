# src/config_cascade/core/engine/engine.py
"""
CascadeEngine: orquestração da cascata de configuração.

Fluxo de uma execução (`cascade`):

    fetch    → RecordStore.fetch_all (falha = StoreUnavailableError, fatal)
    resolve  → build_graph + resolve_affected (conjunto afetado e ordem)
    compute  → recompute de cada nó afetado, em ordem, com loop de convergência
    persist  → ChangeDetector → Deduplicator → BatchWriter (omitido em dry-run)

Loop de convergência:
    - Um nó cuja dependência afetada ainda não foi resolvida no passe
      corrente é adiado (UNREADY_DEPENDENCY) em vez de ler dado obsoleto
    - Membros de um mesmo ciclo não bloqueiam uns aos outros: a dependência
      intra-ciclo usa o último valor resolvido ou persistido
    - Passes adicionais reprocessam apenas adiados e falhos, até
      `max_passes` ou até um passe não produzir progresso

Guardrails:
    - Falha de computação de um nó vira ENGINE_EXECUTION_ERROR e conta
      como falha, sem interromper os demais
    - Falha inesperada fora do cálculo por nó vira resultado FAILED com
      payload estruturado (sem stack trace cru para o operador)
    - Nós soft-deleted são percorridos (seus dependentes são afetados)
      mas não são recomputados

`rebuild_hierarchy` reconstrói groupings e containers nível a nível
(grouping → menu_section → menu_config → page/user_config → space →
workspace → app), adiando containers cujos filhos falharam no passe.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from config_cascade.core.compute.changes import has_changed
from config_cascade.core.compute.computer import NO_CHANGE
from config_cascade.core.compute.dedup import deduplicate
from config_cascade.core.compute.hierarchy import hierarchy_levels, recompute
from config_cascade.core.config.settings import EngineSettings
from config_cascade.core.errors import (
    ErrorPayload,
    cycle_detected,
    engine_execution_error,
    node_not_found,
    schema_violation,
    store_unavailable,
    unready_dependency,
)
from config_cascade.core.exceptions import StoreUnavailableError
from config_cascade.core.graph.builder import DependencyGraph, build_graph
from config_cascade.core.graph.cycles import cyclic_components
from config_cascade.core.graph.resolver import resolve_affected
from config_cascade.core.graph.tree import render_dependency_tree
from config_cascade.core.nodes.schema import node_issues
from config_cascade.core.nodes.types import ConfigNode
from config_cascade.core.persistence.batch_writer import BatchMetrics, BatchWriter
from config_cascade.core.persistence.store import RecordStore

from .context import CascadeContext


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CascadeResult:
    """Resultado agregado de uma execução do motor."""

    command: str
    success: bool
    affected_count: int = 0
    updated_count: int = 0
    failed_count: int = 0
    duration_ms: int = 0
    dry_run: bool = False
    passes: int = 0
    order: Tuple[str, ...] = ()
    would_change: Tuple[str, ...] = ()
    skipped: Tuple[str, ...] = ()
    failed: Tuple[str, ...] = ()
    cycles: Tuple[Tuple[str, ...], ...] = ()
    duplicates_removed: int = 0
    warnings: Tuple[str, ...] = ()
    metrics: Optional[BatchMetrics] = None
    error: Optional[ErrorPayload] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "command": self.command,
            "success": self.success,
            "affected_count": self.affected_count,
            "updated_count": self.updated_count,
            "failed_count": self.failed_count,
            "duration_ms": self.duration_ms,
            "dry_run": self.dry_run,
            "passes": self.passes,
            "order": list(self.order),
            "would_change": list(self.would_change),
            "skipped": list(self.skipped),
            "failed": list(self.failed),
            "cycles": [list(c) for c in self.cycles],
            "duplicates_removed": self.duplicates_removed,
            "warnings": list(self.warnings),
            "metrics": self.metrics.to_dict() if self.metrics is not None else None,
            "error": self.error.to_dict() if self.error is not None else None,
        }


@dataclass
class _PassState:
    """Estado acumulado entre os passes de convergência."""

    resolved: Dict[str, ConfigNode] = field(default_factory=dict)
    candidates: List[ConfigNode] = field(default_factory=list)
    failed: Dict[str, ErrorPayload] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    checked: Set[str] = field(default_factory=set)
    passes: int = 0


CycleLookup = Callable[[str], Optional[Tuple[str, ...]]]


def _no_cycle(_node_id: str) -> Optional[Tuple[str, ...]]:
    return None


class CascadeEngine:
    """Motor de cascata sobre um RecordStore injetado."""

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[EngineSettings] = None,
        *,
        ctx: Optional[CascadeContext] = None,
        manifest: Any = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.perf_counter,
        now: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.settings = settings or EngineSettings()
        self.ctx = ctx or CascadeContext(config=self.settings.to_dict())
        self.manifest = manifest
        self.sleep = sleep
        self.clock = clock
        self.now = now

    # ------------------------------------------------------------------
    # Manifest (opcional)
    # ------------------------------------------------------------------
    def _stage_started(self, stage: str) -> None:
        if self.manifest is not None:
            self.manifest.stage_started(stage=stage, ts=self.now())

    def _stage_finished(self, stage: str, **summary: Any) -> None:
        if self.manifest is not None:
            self.manifest.stage_finished(stage=stage, ts=self.now(), summary=summary)

    def _stage_failed(self, stage: str, error: ErrorPayload) -> None:
        if self.manifest is not None:
            self.manifest.stage_failed(stage=stage, ts=self.now(), error=error.to_dict())

    def _finish(self, result: CascadeResult) -> CascadeResult:
        self.ctx.log(
            step_id=result.command,
            level="info" if result.success else "error",
            message=f"{result.command} finalizado",
            success=result.success,
            updated=result.updated_count,
            failed=result.failed_count,
        )
        if self.manifest is not None:
            self.manifest.finish(ts=self.now(), result=result.to_dict())
        return result

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------
    def load_nodes(self) -> List[ConfigNode]:
        """Todos os nós do store.

        Raises:
            StoreUnavailableError: Se o store não puder ser lido.
        """
        self._stage_started("fetch")
        try:
            nodes = list(self.store.fetch_all())
        except StoreUnavailableError as e:
            self._stage_failed("fetch", store_unavailable(reason=e.message, path=e.details.get("path")))
            raise
        except Exception as e:
            payload = store_unavailable(reason=f"{e.__class__.__name__}: {e}")
            self._stage_failed("fetch", payload)
            raise StoreUnavailableError(message=payload.message, details=payload.details, hint=payload.hint) from e
        self.ctx.log(step_id="fetch", level="info", message="nós carregados", count=len(nodes))
        self._stage_finished("fetch", count=len(nodes))
        return nodes

    # ------------------------------------------------------------------
    # Compute (passes de convergência)
    # ------------------------------------------------------------------
    def _run_pass(
        self,
        order: Sequence[str],
        index: Mapping[str, ConfigNode],
        state: _PassState,
        cycle_of: CycleLookup,
    ) -> List[str]:
        """Executa um passe sobre `order` e devolve os ids adiados."""
        pending = set(order)
        done: Set[str] = set()
        deferred: List[str] = []
        pass_number = state.passes

        for node_id in order:
            node = state.resolved.get(node_id) or index[node_id]
            if node.deleted:
                state.resolved[node_id] = node
                done.add(node_id)
                self.ctx.log(step_id="compute", level="debug", message="nó soft-deleted não recomputado", node_id=node_id)
                continue

            members = cycle_of(node_id) or ()
            blocking = [
                d for d in node.deps
                if d in pending and d not in done and d != node_id and d not in members
            ]
            if blocking:
                self.ctx.report(
                    step_id="compute",
                    payload=unready_dependency(node_id=node_id, pending=blocking, pass_number=pass_number),
                )
                deferred.append(node_id)
                continue

            if node_id not in state.checked:
                state.checked.add(node_id)
                self._report_schema(node, index)

            try:
                outcome = recompute(node, resolved=state.resolved, fallback=index, ctx=self.ctx)
            except Exception as e:
                payload = engine_execution_error(
                    stage="compute",
                    node_id=node_id,
                    exc_type=e.__class__.__name__,
                    exc_message=str(e),
                )
                self.ctx.report(step_id="compute", payload=payload, level="error")
                state.failed[node_id] = payload
                continue

            state.failed.pop(node_id, None)
            done.add(node_id)
            if outcome is NO_CHANGE:
                state.resolved[node_id] = node
            else:
                state.resolved[node_id] = outcome
                state.candidates.append(outcome)

        return deferred

    def _report_schema(self, node: ConfigNode, index: Mapping[str, ConfigNode]) -> None:
        issues = node_issues(node, index=index, payloads=False)
        if issues:
            payload = schema_violation(
                node_id=node.id,
                kind=node.kind.value if node.kind else None,
                issues=issues,
            )
            self.ctx.report(step_id="compute", payload=payload)

    def _converge(
        self,
        order: Sequence[str],
        index: Mapping[str, ConfigNode],
        cycle_of: CycleLookup = _no_cycle,
    ) -> _PassState:
        state = _PassState()
        current = list(order)

        while current:
            state.passes += 1
            deferred = self._run_pass(current, index, state, cycle_of)
            retry = set(deferred) | set(state.failed)
            upcoming = [i for i in order if i in retry]
            state.skipped = deferred

            if not upcoming:
                break
            if upcoming == current:
                self.ctx.log(step_id="compute", level="warning", message="passe sem progresso", pending=upcoming)
                break
            if state.passes >= self.settings.max_passes:
                self.ctx.add_warning(
                    step_id="compute",
                    message=f"max_passes ({self.settings.max_passes}) atingido com {len(upcoming)} nó(s) pendente(s)",
                )
                break
            current = upcoming

        return state

    # ------------------------------------------------------------------
    # Persist
    # ------------------------------------------------------------------
    def _persist(
        self,
        candidates: Sequence[ConfigNode],
        index: Mapping[str, ConfigNode],
        *,
        dry_run: bool,
    ) -> Tuple[List[ConfigNode], int, Optional[BatchMetrics]]:
        changed = [c for c in candidates if has_changed(index.get(c.id), c)]
        dedup = deduplicate(changed)
        if dedup.duplicates_removed:
            self.ctx.log(
                step_id="persist",
                level="info",
                message="atualizações duplicadas colapsadas",
                duplicates_removed=dedup.duplicates_removed,
            )

        if dry_run:
            self.ctx.log(step_id="persist", level="info", message="dry-run: nenhuma escrita", would_change=len(dedup.nodes))
            return dedup.nodes, dedup.duplicates_removed, None

        stamp = self.now().isoformat()
        stamped = [replace(n, updated_at=stamp) for n in dedup.nodes]
        writer = BatchWriter.from_settings(self.store, self.settings, sleep=self.sleep, clock=self.clock, ctx=self.ctx)
        metrics = writer.write(stamped)
        return stamped, dedup.duplicates_removed, metrics

    def _run(
        self,
        command: str,
        order: Sequence[str],
        index: Mapping[str, ConfigNode],
        *,
        dry_run: bool,
        started: float,
        cycle_of: CycleLookup = _no_cycle,
        cycles: Tuple[Tuple[str, ...], ...] = (),
    ) -> CascadeResult:
        self._stage_started("compute")
        state = self._converge(order, index, cycle_of)
        self._stage_finished(
            "compute",
            passes=state.passes,
            candidates=len(state.candidates),
            skipped=len(state.skipped),
            failed=len(state.failed),
        )

        self._stage_started("persist")
        written, duplicates, metrics = self._persist(state.candidates, index, dry_run=dry_run)
        self._stage_finished("persist", **(metrics.to_dict() if metrics is not None else {"dry_run": True}))

        failed_records = metrics.failed_records if metrics is not None else 0
        failed_count = len(state.failed) + failed_records

        return CascadeResult(
            command=command,
            success=failed_count == 0,
            affected_count=len(order),
            updated_count=metrics.processed_records if metrics is not None else 0,
            failed_count=failed_count,
            duration_ms=int(max(self.clock() - started, 0.0) * 1000),
            dry_run=dry_run,
            passes=state.passes,
            order=tuple(order),
            would_change=tuple(n.id for n in written),
            skipped=tuple(state.skipped),
            failed=tuple(state.failed),
            cycles=cycles,
            duplicates_removed=duplicates,
            warnings=tuple(self.ctx.all_warnings()),
            metrics=metrics,
        )

    def _unexpected(self, command: str, stage: str, exc: Exception, started: float, dry_run: bool) -> CascadeResult:
        payload = engine_execution_error(stage=stage, exc_type=exc.__class__.__name__, exc_message=str(exc))
        self.ctx.report(step_id=command, payload=payload, level="error")
        self._stage_failed(stage, payload)
        return CascadeResult(
            command=command,
            success=False,
            duration_ms=int(max(self.clock() - started, 0.0) * 1000),
            dry_run=dry_run,
            warnings=tuple(self.ctx.all_warnings()),
            error=payload,
        )

    # ------------------------------------------------------------------
    # Operações públicas
    # ------------------------------------------------------------------
    def cascade(self, changed_ids: Iterable[str], *, dry_run: Optional[bool] = None) -> CascadeResult:
        """Propaga a mudança de `changed_ids` para todos os dependentes.

        Args:
            changed_ids: ids cujo dado mudou (sementes).
            dry_run: quando True, computa mas não grava. None usa o settings.

        Returns:
            CascadeResult com contagens, ordem, métricas e warnings.

        Raises:
            StoreUnavailableError: Se o store não puder ser lido.
        """
        dry = self.settings.dry_run if dry_run is None else bool(dry_run)
        seeds = list(dict.fromkeys(changed_ids))
        started = self.clock()
        self.ctx.log(step_id="cascade", level="info", message="cascata iniciada", seeds=seeds, dry_run=dry)

        nodes = self.load_nodes()
        stage = "resolve"
        try:
            self._stage_started("resolve")
            index = {n.id: n for n in nodes}
            affected = resolve_affected(seeds, build_graph(nodes), index)

            for missing in affected.unknown:
                if missing in affected.seeds:
                    self.ctx.report(step_id="resolve", payload=node_not_found(node_id=missing))
            for members in affected.cycles:
                self.ctx.report(step_id="resolve", payload=cycle_detected(members=list(members)))

            self._stage_finished(
                "resolve",
                affected=len(affected),
                cycles=len(affected.cycles),
                unknown=list(affected.unknown),
            )

            stage = "compute"
            result = self._run(
                "cascade",
                affected.ordered,
                index,
                dry_run=dry,
                started=started,
                cycle_of=affected.cycle_of,
                cycles=affected.cycles,
            )
        except Exception as e:
            return self._finish(self._unexpected("cascade", stage, e, started, dry))

        return self._finish(result)

    def rebuild_hierarchy(
        self,
        *,
        after_ids: Optional[Iterable[str]] = None,
        dry_run: Optional[bool] = None,
    ) -> CascadeResult:
        """Reconstrói groupings e containers em ordem de nível.

        Args:
            after_ids: quando informado, restringe o rebuild aos nós de
                hierarquia no fecho de dependentes desses ids. None
                reconstrói a hierarquia inteira.
            dry_run: quando True, computa mas não grava.
        """
        dry = self.settings.dry_run if dry_run is None else bool(dry_run)
        after = list(dict.fromkeys(after_ids)) if after_ids is not None else None
        started = self.clock()
        self.ctx.log(step_id="rebuild_hierarchy", level="info", message="rebuild de hierarquia iniciado", after_ids=after)

        nodes = self.load_nodes()
        stage = "resolve"
        try:
            self._stage_started("resolve")
            index = {n.id: n for n in nodes}
            targets: Sequence[ConfigNode] = nodes
            if after is not None:
                affected = resolve_affected(after, build_graph(nodes), index)
                targets = [index[i] for i in affected.ordered]

            levels = hierarchy_levels(targets)
            order = [n.id for level in levels for n in level]
            self._stage_finished("resolve", levels=len(levels), targets=len(order))

            stage = "compute"
            result = self._run("rebuild_hierarchy", order, index, dry_run=dry, started=started)
        except Exception as e:
            return self._finish(self._unexpected("rebuild_hierarchy", stage, e, started, dry))

        return self._finish(result)

    def graph(self) -> DependencyGraph:
        return build_graph(self.load_nodes())

    def dependency_tree(self, node_id: str, *, max_children: int = 5) -> List[str]:
        """Árvore textual dos dependentes de `node_id`."""
        return render_dependency_tree(self.graph(), node_id, max_children=max_children)

    def check_cycles(self) -> List[Tuple[str, ...]]:
        """Ciclos existentes no grafo persistido (vazio quando acíclico)."""
        return cyclic_components(self.graph())
