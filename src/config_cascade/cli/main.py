"""Config Cascade CLI: cascata, rebuild de hierarquia, benchmark e manutenção.

Códigos de saída:
    0 → sucesso
    1 → execução concluída com falhas (lotes ou nós) ou ciclos encontrados
    2 → erro fatal (store indisponível, configuração ou autoria inválida)
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Tuple

from config_cascade import __version__
from config_cascade.core.config import ConfigError, EngineSettings, ResolvedConfig, compute_config_hash, load_settings
from config_cascade.core.engine import (
    CascadeContext,
    CascadeEngine,
    CascadeResult,
    fix_null_fields,
    run_benchmark,
    update_and_cascade,
)
from config_cascade.core.engine.engine import utc_now
from config_cascade.core.errors import engine_configuration_error, store_unavailable
from config_cascade.core.exceptions import CascadeException, StoreUnavailableError
from config_cascade.core.persistence import JsonFileRecordStore
from config_cascade.core.traceability import CascadeManifest, create_manifest, save_manifest

DEFAULT_CONFIG = "config/cascade.defaults.yaml"
DEFAULT_LOCAL_CONFIG = "config/cascade.local.yaml"

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_FATAL = 2


def split_ids(values: Sequence[str]) -> List[str]:
    """Aceita `a,b` e `a b` (ou os dois misturados), sem repetição."""
    ids: List[str] = []
    for value in values:
        ids.extend(part.strip() for part in value.split(",") if part.strip())
    return list(dict.fromkeys(ids))


def _add_output_flags(parser: argparse.ArgumentParser, default: Any) -> None:
    parser.add_argument("--json", action="store_true", default=default, help="Imprime o resultado em JSON")
    parser.add_argument(
        "--verbose", "-v", action="store_true", default=default, help="Mostra ordem de atualização e warnings"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="config-cascade",
        description="Recomputa dados herdados de configuração em ordem de dependências.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help=f"Arquivo de defaults (default: {DEFAULT_CONFIG})")
    parser.add_argument("--local-config", default=None, help="Override local opcional (deep-merge sobre defaults)")
    parser.add_argument("--store", default=None, help="Arquivo JSON do record store (sobrepõe store.path)")
    parser.add_argument("--manifest", default=None, help="Grava o manifest da execução neste caminho")
    _add_output_flags(parser, default=False)

    # aceitos também depois do subcomando; SUPPRESS preserva o valor global
    output = argparse.ArgumentParser(add_help=False)
    _add_output_flags(output, default=argparse.SUPPRESS)

    subparsers = parser.add_subparsers(dest="command")

    def command(name: str, help_text: str) -> argparse.ArgumentParser:
        return subparsers.add_parser(name, help=help_text, parents=[output])

    cascade = command("cascade", "Propaga a mudança de um ou mais nós")
    cascade.add_argument("ids", nargs="+", help="Ids alterados (separados por vírgula ou espaço)")
    cascade.add_argument("--dry-run", action="store_true", help="Computa sem gravar")

    rebuild = command("rebuild-hierarchy", "Reconstrói groupings e containers por nível")
    scope = rebuild.add_mutually_exclusive_group()
    scope.add_argument("--full", action="store_true", help="Reconstrói a hierarquia inteira (default)")
    scope.add_argument("--after", nargs="+", default=None, help="Apenas a hierarquia afetada por estes ids")
    rebuild.add_argument("--dry-run", action="store_true", help="Computa sem gravar")

    bench = command("benchmark", "Mede uma cascata completa")
    bench.add_argument("--seeds", nargs="+", default=None, help="Ids semente (default: benchmark.seed_ids)")

    update = command("update", "Atualiza override_data de um nó e propaga")
    update.add_argument("id", help="Id do nó")
    update.add_argument("payload", help="Novo override_data (objeto JSON)")

    tree = command("tree", "Árvore de dependentes de um nó")
    tree.add_argument("id", help="Id do nó")
    tree.add_argument("--max-children", type=int, default=5)

    command("fix-nulls", "Normaliza deps/tags/payloads nulos no store")
    command("check-cycles", "Lista ciclos do grafo persistido")

    return parser


# ---------------------------------------------------------------------------
# Configuração e wiring
# ---------------------------------------------------------------------------

def config_paths(args: argparse.Namespace) -> Tuple[Optional[str], str]:
    """Camadas a ler; sem `--config` e sem o arquivo default, a base são os defaults embutidos."""
    defaults = args.config
    if defaults is None and Path(DEFAULT_CONFIG).exists():
        defaults = DEFAULT_CONFIG
    return defaults, args.local_config or DEFAULT_LOCAL_CONFIG


def resolve_config(args: argparse.Namespace) -> ResolvedConfig:
    defaults, local = config_paths(args)
    return load_settings(defaults_path=defaults, local_path=local)


def open_store(args: argparse.Namespace, settings: EngineSettings) -> JsonFileRecordStore:
    path = args.store or settings.store_path
    if not path:
        payload = store_unavailable(reason="store.path não configurado")
        raise StoreUnavailableError(message=payload.message, details=payload.details, hint=payload.hint)
    return JsonFileRecordStore(path)


def _seeds_for(args: argparse.Namespace, settings: EngineSettings) -> List[str]:
    if args.command == "cascade":
        return split_ids(args.ids)
    if args.command == "update":
        return [args.id]
    if args.command == "benchmark":
        return split_ids(args.seeds) if args.seeds else list(settings.benchmark_seed_ids)
    if args.command == "rebuild-hierarchy" and args.after:
        return split_ids(args.after)
    return []


# ---------------------------------------------------------------------------
# Saída
# ---------------------------------------------------------------------------

def format_result(result: CascadeResult, *, verbose: bool = False) -> List[str]:
    status = "OK" if result.success else "FAILED"
    lines = [
        f"{result.command}: {status}{' (dry-run)' if result.dry_run else ''}",
        f"  afetados: {result.affected_count}",
        f"  atualizados: {result.updated_count}",
        f"  falhas: {result.failed_count}",
        f"  passes: {result.passes}",
        f"  duração: {result.duration_ms}ms",
    ]
    if result.dry_run:
        lines.append(f"  mudariam: {len(result.would_change)}")
        lines.extend(f"    {node_id}" for node_id in result.would_change)
    if result.metrics is not None and result.metrics.failed_batches:
        lines.append(f"  lotes falhos: {result.metrics.failed_batches}/{result.metrics.batches_processed}")
    if result.cycles:
        lines.append(f"  ciclos: {len(result.cycles)}")
    if result.skipped:
        lines.append(f"  adiados sem convergir: {', '.join(result.skipped)}")
    if result.error is not None:
        lines.append(f"  erro: {result.error.describe()}")
        if result.error.hint:
            lines.append(f"  dica: {result.error.hint}")
    if verbose:
        lines.append("  ordem:")
        lines.extend(f"    {i}. {node_id}" for i, node_id in enumerate(result.order, start=1))
        if result.warnings:
            lines.append("  warnings:")
            lines.extend(f"    - {w}" for w in result.warnings)
    elif result.warnings:
        lines.append(f"  warnings: {len(result.warnings)} (use --verbose)")
    return lines


def _emit(args: argparse.Namespace, lines: List[str], data: Any, out: Callable[[str], None]) -> None:
    if args.json:
        out(json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True))
        return
    for line in lines:
        out(line)


def _exit_code(result: CascadeResult) -> int:
    return EXIT_OK if result.success else EXIT_FAILED


# ---------------------------------------------------------------------------
# Comandos
# ---------------------------------------------------------------------------

def run_command(
    args: argparse.Namespace,
    engine: CascadeEngine,
    out: Callable[[str], None],
) -> int:
    if args.command == "cascade":
        result = engine.cascade(split_ids(args.ids), dry_run=True if args.dry_run else None)
        _emit(args, format_result(result, verbose=args.verbose), result.to_dict(), out)
        return _exit_code(result)

    if args.command == "rebuild-hierarchy":
        after = split_ids(args.after) if args.after else None
        result = engine.rebuild_hierarchy(after_ids=after, dry_run=True if args.dry_run else None)
        _emit(args, format_result(result, verbose=args.verbose), result.to_dict(), out)
        return _exit_code(result)

    if args.command == "benchmark":
        report = run_benchmark(engine, split_ids(args.seeds) if args.seeds else None)
        lines = report.lines() + format_result(report.result, verbose=args.verbose)[1:]
        _emit(args, lines, report.to_dict(), out)
        return _exit_code(report.result)

    if args.command == "update":
        override = json.loads(args.payload)
        if not isinstance(override, dict):
            raise ValueError("payload deve ser um objeto JSON")
        result = update_and_cascade(engine, args.id, override)
        _emit(args, format_result(result, verbose=args.verbose), result.to_dict(), out)
        return _exit_code(result)

    if args.command == "tree":
        lines = engine.dependency_tree(args.id, max_children=args.max_children)
        _emit(args, lines, {"root": args.id, "lines": lines}, out)
        return EXIT_OK

    if args.command == "fix-nulls":
        counts = fix_null_fields(engine.store)
        lines = [f"{name}: {count}" for name, count in counts.items()]
        lines.append(f"total: {sum(counts.values())}")
        _emit(args, lines, counts, out)
        return EXIT_OK

    if args.command == "check-cycles":
        cycles = engine.check_cycles()
        lines = [" -> ".join(members) for members in cycles] or ["nenhum ciclo encontrado"]
        _emit(args, lines, {"cycles": [list(c) for c in cycles]}, out)
        return EXIT_FAILED if cycles else EXIT_OK

    raise ValueError(f"comando desconhecido: {args.command}")


def main(argv: Optional[Sequence[str]] = None, *, out: Callable[[str], None] = print) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_FATAL

    try:
        resolved = resolve_config(args)
    except ConfigError as e:
        defaults, local = config_paths(args)
        payload = engine_configuration_error(
            reason=str(e),
            exc_type=e.__class__.__name__,
            sources=[p for p in (defaults, local) if p],
        )
        print(f"erro: {payload.describe()}", file=sys.stderr)
        print(f"dica: {payload.hint}", file=sys.stderr)
        return EXIT_FATAL

    config, settings = resolved.config, resolved.settings
    ctx = CascadeContext(config=config)
    ctx.log(step_id="config", level="info", message="configuração resolvida", sources=list(resolved.sources))
    manifest: Optional[CascadeManifest] = None
    if args.manifest:
        manifest = create_manifest(
            run_id=ctx.run_id,
            command=args.command,
            started_at=utc_now(),
            engine_version=__version__,
            config_hash=compute_config_hash(config),
            seed_ids=_seeds_for(args, settings),
        )

    try:
        engine = CascadeEngine(open_store(args, settings), settings, ctx=ctx, manifest=manifest)
        code = run_command(args, engine, out)
    except CascadeException as e:
        print(f"erro: {e.message}", file=sys.stderr)
        if e.hint:
            print(f"dica: {e.hint}", file=sys.stderr)
        code = EXIT_FATAL
    except ValueError as e:
        # inclui json.JSONDecodeError do payload de `update`
        print(f"erro: {e}", file=sys.stderr)
        code = EXIT_FATAL
    finally:
        if manifest is not None:
            save_manifest(manifest, Path(args.manifest))

    return code


if __name__ == "__main__":
    raise SystemExit(main())
