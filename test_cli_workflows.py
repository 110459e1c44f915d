from __future__ import annotations

import io
import os
import subprocess
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from typing import Dict

from blobpack.blob import Blob, read_blob
from blobpack.cli import _norm_id_path, cmd_cat, cmd_info, cmd_list, cmd_pack, cmd_unpack, main


def _build_fixture_tree(root: Path) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    (root / "assets").mkdir()
    (root / "assets" / "sounds").mkdir()
    tex = os.urandom(2048)
    (root / "assets" / "texture.bin").write_bytes(tex)
    files["assets/texture.bin"] = tex
    wav = os.urandom(512)
    (root / "assets" / "sounds" / "beep.wav").write_bytes(wav)
    files["assets/sounds/beep.wav"] = wav
    (root / "assets" / "empty.dat").write_bytes(b"")
    files["assets/empty.dat"] = b""
    return files


class CLICommandTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.files = _build_fixture_tree(self.root)
        self.archive = str(self.root / "assets.blob")
        with redirect_stdout(io.StringIO()):
            cmd_pack(self.archive, [str(self.root / "assets")], quiet=True)

    def test_pack_uses_relative_ids_in_sorted_order(self):
        with open(self.archive, "rb") as fh:
            blob = read_blob(fh)
        ids = [blob.get_id_at_index(i).decode() for i in range(blob.item_count())]
        self.assertEqual(ids, ["assets/empty.dat", "assets/texture.bin", "assets/sounds/beep.wav"])
        for item_id, data in self.files.items():
            self.assertEqual(bytes(blob.get_by_id(item_id)), data)
        self.assertFalse(os.path.exists(self.archive + ".tmp"))

    def test_list_and_info(self):
        out = io.StringIO()
        with redirect_stdout(out):
            cmd_list(self.archive)
            cmd_info(self.archive)
        text = out.getvalue()
        self.assertIn("assets/sounds/beep.wav", text)
        self.assertIn("Items: 3", text)
        self.assertIn(f"Total size: {os.path.getsize(self.archive)}", text)

    def test_cat_by_id_and_index(self):
        sink = io.BytesIO()
        self.assertTrue(cmd_cat(self.archive, "assets/texture.bin", out=sink))
        self.assertEqual(sink.getvalue(), self.files["assets/texture.bin"])
        sink = io.BytesIO()
        self.assertTrue(cmd_cat(self.archive, "2", by_index=True, out=sink))
        self.assertEqual(sink.getvalue(), self.files["assets/sounds/beep.wav"])
        with redirect_stderr(io.StringIO()):
            self.assertFalse(cmd_cat(self.archive, "missing", out=io.BytesIO()))

    def test_unpack_restores_files(self):
        outdir = self.root / "out"
        with redirect_stdout(io.StringIO()):
            n = cmd_unpack(self.archive, outdir=str(outdir))
        self.assertEqual(n, 3)
        for item_id, data in self.files.items():
            self.assertEqual((outdir / item_id).read_bytes(), data)

    def test_unpack_skips_unsafe_and_duplicate_ids(self):
        b = Blob()
        b.append("ok.txt", b"first")
        b.append("ok.txt", b"second")
        b.append("../escape.txt", b"nope")
        b.append("", b"nameless")
        b.append("/etc/passwd", b"absolute")
        b.append("C:/Windows/x", b"drive")
        archive = self.root / "unsafe.blob"
        archive.write_bytes(b.to_bytes())
        outdir = self.root / "unsafe_out"
        err = io.StringIO()
        with redirect_stdout(io.StringIO()), redirect_stderr(err):
            n = cmd_unpack(str(archive), outdir=str(outdir))
        self.assertEqual(n, 1)
        self.assertEqual((outdir / "ok.txt").read_bytes(), b"first")
        self.assertFalse((self.root / "escape.txt").exists())
        self.assertFalse((outdir / "etc").exists())
        self.assertFalse((outdir / "C:").exists())
        self.assertIn("duplicate", err.getvalue())

    def test_absolute_ids_are_rejected(self):
        for item_id in (b"/etc/passwd", b"\\server\\share", b"C:/Windows/x", b"C:relative"):
            with self.subTest(item_id=item_id):
                with self.assertRaises(ValueError):
                    _norm_id_path(item_id)
        self.assertEqual(_norm_id_path(b"sub/./dir/file.bin/"), "sub/dir/file.bin")

    def test_main_reports_corrupt_archive(self):
        bad = self.root / "bad.blob"
        bad.write_bytes(b"\xff\x00\x00\x00\x01")
        err = io.StringIO()
        with redirect_stderr(err), self.assertRaises(SystemExit) as cm:
            main(["list", str(bad)])
        self.assertEqual(cm.exception.code, 2)
        self.assertIn("Error:", err.getvalue())

    def test_main_missing_archive(self):
        with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit) as cm:
            main(["info", str(self.root / "nope.blob")])
        self.assertEqual(cm.exception.code, 2)


class CLIIntegrationTests(unittest.TestCase):
    def run_cli(self, args, *, expect: int | None = 0):
        cmd = [sys.executable, "-m", "blobpack.cli"] + list(args)
        env = os.environ.copy()
        repo_root = Path(__file__).resolve().parent
        existing = env.get("PYTHONPATH", "")
        env["PYTHONPATH"] = str(repo_root) if not existing else f"{repo_root}{os.pathsep}{existing}"
        proc = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, env=env)
        if expect is not None and proc.returncode != expect:
            raise AssertionError(
                f"CLI exited {proc.returncode}, expected {expect}\nCommand: {' '.join(cmd)}\n"
                f"STDOUT:\n{proc.stdout!r}\nSTDERR:\n{proc.stderr!r}"
            )
        return proc

    def test_pack_cat_roundtrip(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            files = _build_fixture_tree(root)
            archive = root / "a.blob"
            self.run_cli(["pack", str(archive), str(root / "assets")])
            proc = self.run_cli(["cat", str(archive), "assets/sounds/beep.wav"])
            self.assertEqual(proc.stdout, files["assets/sounds/beep.wav"])
            self.run_cli(["cat", str(archive), "no/such/item"], expect=1)


if __name__ == "__main__":
    unittest.main()
