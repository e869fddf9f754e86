# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-12
# Description: embed_jsonl.py
# -----------------------------------------------------------------------------
"""
Embed JSONL knowledge files from the command line.

    python -m cli.embed_jsonl jsonl/knowledge.jsonl
    python -m cli.embed_jsonl jsonl/knowledge.jsonl out/knowledge.embedded.jsonl
    python -m cli.embed_jsonl --dir jsonl/            # every *.jsonl in the folder

Provider settings come from the environment / .env (see config/Config.py);
the flags below override them for one run.
"""
import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

import settings
from config.Config import Config
from embedding.KBEmbeddingClient import KBEmbeddingClient
from pipeline.KBEmbedPipeline import KBEmbedPipeline
from pipeline.KBPipelineState import KBProgressSnapshot
from services.KBEmbedJobService import KBEmbedJobService, output_name_for
from utility.logging_utils import get_logger

logger = get_logger(__name__)

RULE = "=" * 40


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Add dense embeddings to JSONL knowledge records")
    parser.add_argument("input", nargs="?", help="Input .jsonl file")
    parser.add_argument("output", nargs="?", help="Output file (default: <input>.embedded.jsonl)")
    parser.add_argument("--dir", dest="directory", help="Embed every *.jsonl in this directory")
    parser.add_argument("--provider", choices=["remote", "local", "openai"], help="Embedding provider")
    parser.add_argument("--endpoint", help="Embeddings endpoint URL (remote provider)")
    parser.add_argument("--model", help="Provider model name")
    parser.add_argument("--local-model-id", help="In-process model id (local provider)")
    parser.add_argument("--batch-size", type=int, help="Records per provider call")
    return parser


def _banner(cfg: Config, input_label: str, output_label: str) -> None:
    print("\nStarting embedding pre-processing")
    print(RULE)
    print(f"Input:    {input_label}")
    print(f"Output:   {output_label}")
    print(f"Provider: {cfg.provider}")
    if cfg.provider == "local":
        print(f"Model:    {cfg.local_model_id}")
    else:
        print(f"API:      {cfg.endpoint if cfg.provider == 'remote' else (cfg.openai_base_url or 'OpenAI default')}")
        print(f"Model:    {cfg.model}")
    print(f"Batch:    {cfg.batch_size}")
    print(f"{RULE}\n")


def _summary(name: str, s: KBProgressSnapshot, output_path: Optional[Path], elapsed_s: Optional[float] = None) -> None:
    if s.status == "done":
        print(f"\nDone: {name}")
        if elapsed_s is not None:
            print(f"  Time:              {elapsed_s:.2f}s")
        print(f"  Embedded:          {s.embedded_count}")
        print(f"  Already embedded:  {s.already_embedded_count}")
        print(f"  Skipped (no text): {s.skipped_count}")
        print(f"  Unparseable lines: {s.error_count}")
        print(f"  Saved to:          {output_path}")
    else:
        print(f"\nFailed: {name}: {s.error}")


def _print_progress(snapshot: KBProgressSnapshot) -> None:
    if snapshot.status == "processing":
        print(
            f"\r  {snapshot.progress:3d}%  embedded={snapshot.embedded_count} "
            f"processed={snapshot.processed_count}",
            end="",
            flush=True,
        )


async def _embed_file(client: KBEmbeddingClient, cfg: Config, input_path: Path, output_path: Path) -> int:
    pipeline = KBEmbedPipeline(client, batch_size=cfg.batch_size, on_progress=_print_progress)
    try:
        result = await pipeline.run_file(input_path, output_path)
    except OSError as e:
        print(f"\nFailed: could not write {output_path}: {e}", file=sys.stderr)
        return 1
    finally:
        await client.aclose()

    print()
    _summary(input_path.name, result.snapshot, output_path, result.elapsed_s)
    if not result.ok:
        logger.error("Embedding '%s' failed: %s", input_path, result.snapshot.error)
    return 0 if result.ok else 1


async def _embed_directory(client: KBEmbeddingClient, cfg: Config, directory: Path) -> int:
    service = KBEmbedJobService(client=client, batch_size=cfg.batch_size)
    try:
        service.add_directory(directory)
        jobs = await service.run_pending()
    finally:
        await client.aclose()

    if not jobs:
        print("No .jsonl files to embed.")
        return 0

    for job in jobs:
        _summary(job.name, job.snapshot, job.output_path)

    stats = service.stats()
    print(f"\n{RULE}")
    print(f"Files: {stats['total_files']}  completed: {stats['completed_files']}  failed: {stats['failed_files']}")
    print(f"Records processed: {stats['processed_records']}")
    return 1 if stats["failed_files"] else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.input and not args.directory:
        parser.print_usage(sys.stderr)
        print("error: give an input file or --dir", file=sys.stderr)
        return 1

    try:
        cfg = Config.from_env().with_overrides(
            provider=args.provider,
            endpoint=args.endpoint,
            model=args.model,
            local_model_id=args.local_model_id,
            batch_size=args.batch_size,
        )
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.directory:
        directory = Path(args.directory)
        if not directory.is_dir():
            print(f"error: directory not found at {directory}", file=sys.stderr)
            return 1
        _banner(cfg, str(directory), f"{directory}/*{settings.OUTPUT_SUFFIX}")
        return asyncio.run(_embed_directory(KBEmbeddingClient(cfg), cfg, directory))

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"error: input file not found at {input_path}", file=sys.stderr)
        return 1
    output_path = Path(args.output) if args.output else input_path.with_name(output_name_for(input_path.name))

    _banner(cfg, str(input_path), str(output_path))
    return asyncio.run(_embed_file(KBEmbeddingClient(cfg), cfg, input_path, output_path))


if __name__ == "__main__":
    sys.exit(main())
