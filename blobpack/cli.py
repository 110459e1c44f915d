from __future__ import annotations

import os
import sys
import argparse
import logging
import shutil

from pathlib import Path
from typing import List, Optional, Tuple

from blobpack.blob import Blob
from blobpack.constants import COPY_CHUNK_SIZE, HEADER_LEN_STRUCT
from blobpack.errors import BlobError
from blobpack.header import header_size
from blobpack.lookup import item_stream
from blobpack.streaming import open_blob_file


def _norm_id_path(item_id: bytes) -> str:
    """Turn an item id into a relative forward-slash path for extraction.

    Rules:
    - Convert backslashes to slashes
    - Strip trailing slashes
    - Remove empty and '.' segments
    - Reject absolute ids (leading slash or a drive like "C:")
    - Reject '..' segments and empty results
    """
    p = item_id.decode("utf-8").replace("\\", "/")
    if p.startswith("/"):
        raise ValueError("id may not be an absolute path")
    p = p.rstrip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    if not parts:
        raise ValueError("id does not name a file")
    if ":" in parts[0]:
        raise ValueError("id may not name a drive")
    for q in parts:
        if q == "..":
            raise ValueError("id may not contain '..'")
    return "/".join(parts)


def _collect_inputs(inputs: List[str]) -> List[Tuple[str, str]]:
    """Return (id, filesystem path) for every file under `inputs`, in a stable order."""
    files: List[Tuple[str, str]] = []
    for raw in inputs:
        p = Path(raw)
        if p.is_dir():
            base = p.resolve().name
            for root, dirnames, filenames in os.walk(str(p)):
                dirnames.sort()
                for f in sorted(filenames):
                    full = os.path.join(root, f)
                    rel = os.path.relpath(full, start=str(p))
                    files.append((Path(base, rel).as_posix(), full))
        else:
            files.append((p.name, str(p)))
    return files


def cmd_pack(output: str, inputs: List[str], *, quiet: bool = False) -> int:
    """Pack files and directories into a new blob archive.

    The archive is written to a temporary file next to `output` and moved into
    place only once complete.

    Returns:
        Number of items written.
    """
    files = _collect_inputs(inputs)
    blob = Blob()
    for item_id, full in files:
        with open(full, "rb") as fh:
            blob.append(item_id, fh.read())
        if not quiet:
            print(f" packing: {item_id}")

    tmp = output + ".tmp"
    try:
        with open(tmp, "wb") as out:
            blob.write(out)
        os.replace(tmp, output)
    except BaseException:
        if os.path.exists(tmp):
            os.remove(tmp)
        raise
    print(f"Packed {blob.item_count()} items ({blob.data_length} bytes) into {output}")
    return blob.item_count()


def cmd_list(archive: str) -> bool:
    with open_blob_file(archive) as blob:
        for i, e in enumerate(blob.entries):
            print(f"{i:6d} {e.length:12d}  {e.id.decode('utf-8', 'replace')}")
    return True


def cmd_info(archive: str) -> bool:
    with open_blob_file(archive) as blob:
        header_len = header_size(blob.entries)
        print(f"Items: {blob.item_count()}")
        print(f"Header length: {header_len}")
        print(f"Data length: {blob.data_length}")
        print(f"Total size: {HEADER_LEN_STRUCT.size + header_len + blob.data_length}")
    return True


def cmd_cat(archive: str, key: str, *, by_index: bool = False, out=None) -> bool:
    """Stream one item to `out` (stdout by default) without loading the archive.

    Returns:
        False when no such item exists.
    """
    if out is None:
        out = sys.stdout.buffer
    with open_blob_file(archive) as blob:
        stream = item_stream(blob, int(key) if by_index else key)
        if stream is None:
            print(f"Error: no item {key!r} in {archive}", file=sys.stderr)
            return False
        shutil.copyfileobj(stream, out, COPY_CHUNK_SIZE)
        out.flush()
    return True


def cmd_unpack(archive: str, *, outdir: str = ".", quiet: bool = False) -> int:
    """Extract every item as a file under `outdir`.

    Duplicate ids keep the first entry, matching lookup by id. Ids that are
    not safe relative paths are skipped with a warning.

    Returns:
        Number of files written.
    """
    written = 0
    seen = set()
    with open_blob_file(archive) as blob:
        for i, e in enumerate(blob.entries):
            if e.id in seen:
                print(f"Warning: skipping duplicate id at index {i}: {e.id!r}", file=sys.stderr)
                continue
            seen.add(e.id)
            try:
                rel = _norm_id_path(e.id)
            except (UnicodeDecodeError, ValueError) as exc:
                print(f"Warning: skipping index {i} ({e.id!r}): {exc}", file=sys.stderr)
                continue
            dst = os.path.join(outdir, *rel.split("/"))
            os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
            stream = blob.get_by_index(i)
            with open(dst, "wb") as wf:
                shutil.copyfileobj(stream, wf, COPY_CHUNK_SIZE)
            written += 1
            if not quiet:
                print(f" unpacked: {rel}")
    print(f"Unpacked {written} files into {outdir}")
    return written


def main(argv: Optional[List[str]] = None):
    ap = argparse.ArgumentParser(prog="blobpack", description="Flat blob archive tool")
    ap.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_pack = sub.add_parser("pack", help="Pack files into a new archive")
    ap_pack.add_argument("output", help="Output archive path")
    ap_pack.add_argument("inputs", nargs="+", help="Input files/directories")
    ap_pack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    ap_list = sub.add_parser("list", help="List archive contents")
    ap_list.add_argument("archive", help="Archive path")

    ap_info = sub.add_parser("info", help="Show archive sizes")
    ap_info.add_argument("archive", help="Archive path")

    ap_cat = sub.add_parser("cat", help="Write one item to stdout")
    ap_cat.add_argument("archive", help="Archive path")
    ap_cat.add_argument("key", help="Item id (or index with --index)")
    ap_cat.add_argument("--index", action="store_true", help="Treat key as a zero-based index")

    ap_unpack = sub.add_parser("unpack", help="Extract all items as files")
    ap_unpack.add_argument("archive", help="Archive path")
    ap_unpack.add_argument("--outdir", default=".", help="Output directory")
    ap_unpack.add_argument("--quiet", help="limit outputs to summaries only", action="store_true")

    args = ap.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    try:
        if args.cmd == "pack":
            cmd_pack(args.output, args.inputs, quiet=args.quiet)
        elif args.cmd == "list":
            cmd_list(args.archive)
        elif args.cmd == "info":
            cmd_info(args.archive)
        elif args.cmd == "cat":
            if not cmd_cat(args.archive, args.key, by_index=args.index):
                sys.exit(1)
        elif args.cmd == "unpack":
            cmd_unpack(args.archive, outdir=args.outdir, quiet=args.quiet)
        else:
            raise RuntimeError("Unknown command")
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except (BlobError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
