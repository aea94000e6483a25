#!/usr/bin/env python3
"""
compress_images.py
Compress local image files through the TinyShrink pipeline from the command line.

Examples:
  # Use the key from TINYSHRINK_TINIFY_API_KEY or the saved state file
  python scripts/compress_images.py photos/a.png photos/b.jpg

  # Pass a key explicitly, write compressed files to a folder, print JSON
  python scripts/compress_images.py photos/*.png --api-key XXXX --out-dir out --json

  # Go through a running companion server instead of calling Tinify directly
  TINYSHRINK_USE_PROXY=true TINYSHRINK_COMPANION_URL=http://localhost:3001 \
  python scripts/compress_images.py photos/a.png

  # Manage the images a companion server has kept
  TINYSHRINK_COMPANION_URL=http://localhost:3001 python scripts/compress_images.py --list-remote
  TINYSHRINK_COMPANION_URL=http://localhost:3001 python scripts/compress_images.py --delete-remote a_1.png
"""

import sys
import json
import asyncio
import logging
import argparse
from pathlib import Path
from typing import List

from tinyshrink.clients.tinify_client import build_compression_client
from tinyshrink.core import state
from tinyshrink.core.config import settings
from tinyshrink.core.exceptions import CredentialError
from tinyshrink.core.state import credential_resolver, history_store
from tinyshrink.models.credential import Credential, Provenance
from tinyshrink.models.job import JobState
from tinyshrink.services.compression_service import CompressionService
from tinyshrink.services.stats_service import compute_stats, format_size

# ---------- Logging ----------
def setup_logging(verbosity: int) -> None:
    level = logging.WARNING if verbosity == 0 else logging.INFO if verbosity == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

log = logging.getLogger("compress_images")

# ---------- Files ----------
def read_images(paths: List[str]):
    images = []
    for p in paths:
        path = Path(p)
        if not path.is_file():
            log.error("Not a file: %s", path)
            sys.exit(2)
        images.append((path.name, path.read_bytes()))
    return images

def write_outputs(jobs, out_dir: str) -> None:
    root = Path(out_dir)
    root.mkdir(parents=True, exist_ok=True)
    for job in jobs:
        if job.status == JobState.SUCCESS and job.artifact.kind == "inline":
            target = root / job.original_name
            target.write_bytes(job.artifact.data)
            log.info("Wrote %s", target)

# ---------- Companion ----------
async def manage_remote(companion, args) -> int:
    if not await companion.health():
        log.error("Companion server at %s is not reachable.", companion.base_url)
        return 2

    code = 0
    for name in args.delete_remote or []:
        if await companion.delete_artifact(name):
            print(f"Deleted {name}")
        else:
            print(f"{name}: not found")
            code = 1

    if args.list_remote:
        files = await companion.list_artifacts()
        if args.json:
            print(json.dumps([f.model_dump() for f in files], indent=2, ensure_ascii=False))
        else:
            for f in files:
                print(f"{f.name}\t{format_size(f.size)}\t{f.modified_at}")
            print(f"{len(files)} files on {companion.base_url}")
    return code

# ---------- CLI ----------
def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compress images with the Tinify API.")
    parser.add_argument("files", nargs="*", help="Image files to compress.")
    parser.add_argument("--api-key", help="Tinify API key (saved for later runs).")
    parser.add_argument("-o", "--out-dir", help="Directory to write compressed images to.")
    parser.add_argument("--json", action="store_true", help="Print job results as JSON.")
    parser.add_argument("--list-remote", action="store_true", help="List images kept by the companion server.")
    parser.add_argument("--delete-remote", action="append", metavar="NAME",
                        help="Delete an image kept by the companion server (repeatable).")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="-v for INFO, -vv for DEBUG.")
    return parser

async def run(args) -> int:
    setup_logging(args.verbose)

    if args.list_remote or args.delete_remote:
        if state.companion is None:
            log.error("No companion server: set TINYSHRINK_COMPANION_URL.")
            return 2
        return await manage_remote(state.companion, args)
    if not args.files:
        log.error("No image files given.")
        return 2

    if args.api_key:
        await credential_resolver.resolve()
        try:
            credential_resolver.save(args.api_key)
        except CredentialError as e:
            log.warning("Not saving --api-key: %s", e)
        credential = Credential(secret=args.api_key, provenance=Provenance.USER_INPUT)
    else:
        credential = await credential_resolver.resolve()
    if credential is None:
        log.error("No API key: pass --api-key or set TINYSHRINK_TINIFY_API_KEY.")
        return 2

    service = CompressionService(build_compression_client(), history_store)
    jobs = service.submit_batch(read_images(args.files))
    await service.process(jobs, credential)

    if args.out_dir:
        write_outputs(jobs, args.out_dir)

    if args.json:
        print(json.dumps([
            {
                "name": job.original_name,
                "status": job.status.value,
                "original_size": job.original_size,
                "compressed_size": job.compressed_size,
                "error": job.error
            }
            for job in jobs
        ], indent=2, ensure_ascii=False))
    else:
        for job in jobs:
            if job.status == JobState.SUCCESS:
                print(f"{job.original_name}: {format_size(job.original_size)} -> {format_size(job.compressed_size)}")
            else:
                print(f"{job.original_name}: failed ({job.error})")

        stats = compute_stats(jobs=jobs)
        if stats.has_data:
            print(f"\nSaved {format_size(stats.saved_bytes)} ({stats.savings_percent:.1f}%) "
                  f"across {stats.count} files; history kept in {settings.state_file}")

    return 0 if all(job.status == JobState.SUCCESS for job in jobs) else 1

def main():
    parser = build_arg_parser()
    args = parser.parse_args()
    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        print("\nInterrupted.")
    except Exception as e:
        log.exception("Fatal error: %s", e)
        sys.exit(1)

if __name__ == "__main__":
    main()
