#!/usr/bin/env python3
"""
Functional Test: VaultPipeline (batch driver)

This test verifies:
1. Pipeline initialization wires a compressor per tier, a cipher and a key provider
2. Files and directories map to .png outputs
3. A corrupt file fails on its own without stopping the batch
4. Encrypt then decrypt through passphrase-derived keys and a salt file
5. Non-PNG inputs are read through Pillow
6. The rich progress observer counts every stage

Usage:
    python tests/functional_tests/test_pipeline.py
    pytest tests/functional_tests/test_pipeline.py
"""

import json
import struct
import sys
import tempfile
import zlib
from pathlib import Path

import pytest
from PIL import Image
from rich.progress import Progress

# Add repo root to path for imports
repo_root = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(repo_root))

from png_builders import gradient_rgba, random_rgba
from engines.compression import get_compressor
from engines.keys import get_key_provider
from pngcore.decoder import read_from_file
from pngcore.encoder import save
from pngcore.errors import DecryptError, UnsupportedFeature
from pngcore.progress import DECODE_STAGES, ENCODE_STAGES
from pngcore.types import CompressionTier, DecodedImage, KeyMaterial
from pngvault import RichProgressObserver, VaultPipeline
import utilities
from utilities import Print, set_log_level

FAST_KDF = {
    "provider": "pbkdf2",
    "salt_file": "pngvault.salt",
    "pbkdf2": {"iterations": 1000, "salt_size": 16},
    "argon2id": {"time_cost": 1, "memory_cost": 8, "parallelism": 1, "salt_size": 16},
}


def make_pipeline(workdir: Path, **processing) -> VaultPipeline:
    """Pipeline on the repo config, with cheap key derivation."""
    config = json.loads((repo_root / "config" / "config.json").read_text())
    config['key_derivation'] = FAST_KDF
    config['compression']['zopfli']['iterations'] = 5
    config['processing'].update(processing)

    config_path = workdir / "config.json"
    config_path.write_text(json.dumps(config))

    pipeline = VaultPipeline(config_path=config_path)
    pipeline.initialize()
    return pipeline


def write_sample(path: Path, width: int = 8, height: int = 6, seed: int = 1) -> DecodedImage:
    image = DecodedImage.from_rgba(width, height, random_rgba(width, height, seed=seed, opaque=True))
    save(image, path, tier=CompressionTier.LOSSLESS)
    return image


def test_initialization():
    with tempfile.TemporaryDirectory() as tmp:
        pipeline = make_pipeline(Path(tmp))

        assert set(pipeline.compressors) == set(CompressionTier)
        assert pipeline.compressors[CompressionTier.LOSSLESS].name == "zlib-fast"
        assert pipeline.compressors[CompressionTier.BALANCED].name == "zlib-best"
        assert pipeline.compressors[CompressionTier.MAXIMUM].name == "zopfli"
        assert pipeline.compressors[CompressionTier.MAXIMUM].iterations == 5
        assert pipeline.cipher.name == "aes-256-gcm"
        assert pipeline.key_provider.name == "pbkdf2"


def test_missing_config():
    with pytest.raises(FileNotFoundError):
        VaultPipeline(config_path=Path("/nonexistent/config.json"))


def test_requires_initialize():
    pipeline = VaultPipeline()
    with pytest.raises(RuntimeError):
        pipeline.process_file(Path("a.png"), Path("b.png"), CompressionTier.LOSSLESS)


def test_collect_jobs():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        src = tmp / "in"
        src.mkdir()
        write_sample(src / "b.png")
        write_sample(src / "a.png")
        (src / "notes.txt").write_text("not an image")

        jobs = pipeline.collect_jobs(src, tmp / "out")
        assert [(i.name, o.name) for i, o in jobs] == [("a.png", "a.png"), ("b.png", "b.png")]
        assert all(o.parent == tmp / "out" for _, o in jobs)

        single = pipeline.collect_jobs(src / "a.png", tmp / "single.png")
        assert single == [(src / "a.png", tmp / "single.png")]

        # No suffix and not yet created: treated as a directory
        into_dir = pipeline.collect_jobs(src / "a.png", tmp / "fresh")
        assert into_dir == [(src / "a.png", tmp / "fresh" / "a.png")]

        with pytest.raises(FileNotFoundError):
            pipeline.collect_jobs(tmp / "missing", tmp / "out")


def test_batch_isolates_failures():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        good = tmp / "good.png"
        bad = tmp / "bad.png"
        image = write_sample(good)
        bad.write_bytes(good.read_bytes()[:40])

        results = pipeline.process_batch(
            [(bad, tmp / "out" / "bad.png"), (good, tmp / "out" / "good.png")],
            CompressionTier.BALANCED,
            workers=2,
            show_progress=False
        )

        assert [r['success'] for r in results] == [False, True]
        assert "FormatError" in results[0]['error']
        assert not (tmp / "out" / "bad.png").exists()

        stats = results[1]
        assert (stats['width'], stats['height']) == (image.width, image.height)
        assert stats['output_size'] == (tmp / "out" / "good.png").stat().st_size
        assert not stats['encrypted']


def oversized_bmp_header(width: int, height: int) -> bytes:
    """54-byte 24-bit BMP header declaring width x height, with no pixel data."""
    file_header = b"BM" + struct.pack("<IHHI", 54, 0, 0, 54)
    info_header = struct.pack("<IiiHHIIiiII", 40, width, height, 1, 24, 0, 0, 2835, 2835, 0, 0)
    return file_header + info_header


def test_pillow_size_limit_is_isolated():
    """Pillow rejecting a 400-megapixel header fails that file only."""
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        huge = tmp / "huge.bmp"
        huge.write_bytes(oversized_bmp_header(20000, 20000))
        good = tmp / "good.png"
        write_sample(good)

        for workers in (1, 2):
            out = tmp / f"out{workers}"
            results = pipeline.process_batch(
                [(huge, out / "huge.png"), (good, out / "good.png")],
                CompressionTier.LOSSLESS,
                workers=workers,
                show_progress=False
            )
            assert [r['success'] for r in results] == [False, True]
            assert "FormatError" in results[0]['error']
            assert (out / "good.png").exists()


def test_unexpected_error_is_isolated():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        first = tmp / "first.png"
        second = tmp / "second.png"
        write_sample(first)
        write_sample(second, seed=2)

        load_image = pipeline.load_image

        def flaky_load(path, key=None, observer=None):
            if Path(path).name == "first.png":
                raise LookupError("no decoder for this file")
            return load_image(path, key=key, observer=observer)

        pipeline.load_image = flaky_load
        results = pipeline.process_batch(
            [(first, tmp / "out" / "first.png"), (second, tmp / "out" / "second.png")],
            CompressionTier.LOSSLESS,
            workers=1,
            show_progress=False
        )

        assert [r['success'] for r in results] == [False, True]
        assert results[0]['error'] == "LookupError: no decoder for this file"


def test_debug_output_off_by_default():
    lines = []
    original = utilities._print
    utilities._print = lines.append
    try:
        Print("DEBUG", "hidden")
        Print("INFO", "shown")
        decode_lines = len(lines)
        image = DecodedImage.from_rgba(2, 2, bytes([9, 9, 9, 255] * 4))
        with tempfile.TemporaryDirectory() as tmp:
            save(image, Path(tmp) / "quiet.png")
            read_from_file(Path(tmp) / "quiet.png")
        assert len(lines) == decode_lines

        set_log_level(True)
        Print("DEBUG", "now shown")
    finally:
        set_log_level(False)
        utilities._print = original

    assert len(lines) == 2
    assert "INFO" in lines[0] and "shown" in lines[0]
    assert "DEBUG" in lines[1] and "now shown" in lines[1]


def test_encrypt_then_decrypt_with_passphrase():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        source = tmp / "plain.png"
        image = write_sample(source, seed=3)

        sealed_dir = tmp / "sealed"
        salt_path = pipeline.default_salt_path(sealed_dir)
        assert salt_path == sealed_dir / "pngvault.salt"

        key = pipeline.derive_key("correct horse", salt_path, create=True)
        assert salt_path.exists()

        pipeline.process_file(source, sealed_dir / "plain.png", CompressionTier.LOSSLESS, encrypt_key=key)

        with pytest.raises(DecryptError):
            read_from_file(sealed_dir / "plain.png", key=pipeline.derive_key("wrong", salt_path))

        same_key = pipeline.derive_key("correct horse", salt_path)
        assert same_key == key

        restored = tmp / "restored.png"
        pipeline.process_file(sealed_dir / "plain.png", restored, CompressionTier.LOSSLESS, decrypt_key=same_key)
        assert read_from_file(restored).rgba == image.rgba


def test_decrypt_needs_salt_file():
    with tempfile.TemporaryDirectory() as tmp:
        pipeline = make_pipeline(Path(tmp))
        with pytest.raises(FileNotFoundError):
            pipeline.derive_key("pw", Path(tmp) / "absent.salt")


def test_key_providers():
    salt = bytes(range(16))
    for name in ("pbkdf2", "argon2id"):
        provider = get_key_provider(name, FAST_KDF[name])
        key = provider.derive_key(b"secret", salt)
        assert len(key) == 32
        assert key == provider.derive_key(b"secret", salt)
        assert key != provider.derive_key(b"secret!", salt)
        assert len(provider.generate_salt()) == 16
        KeyMaterial(key)

    with pytest.raises(ValueError):
        get_key_provider("pbkdf2", {}).derive_key(b"secret", b"short")
    with pytest.raises(ValueError):
        get_key_provider("scrypt", {})


def test_non_png_input_through_pillow():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        rgba = gradient_rgba(7, 5)
        Image.frombytes('RGBA', (7, 5), rgba).convert('RGB').save(tmp / "input.bmp")

        pipeline.process_file(tmp / "input.bmp", tmp / "output.png", CompressionTier.LOSSLESS)
        assert read_from_file(tmp / "output.png").rgba == rgba


def test_palette_png_falls_back_to_pillow():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        source = Image.frombytes('RGBA', (6, 4), gradient_rgba(6, 4)).convert('RGB').convert('P')
        source.save(tmp / "palette.png")

        pipeline.process_file(tmp / "palette.png", tmp / "out.png", CompressionTier.LOSSLESS)
        assert read_from_file(tmp / "out.png").rgba == source.convert('RGBA').tobytes()

        strict = make_pipeline(tmp, pillow_fallback=False)
        with pytest.raises(UnsupportedFeature):
            strict.process_file(tmp / "palette.png", tmp / "out2.png", CompressionTier.LOSSLESS)


def test_maximum_tier_backend():
    data = bytes(gradient_rgba(10, 10))
    compressor = get_compressor("zopfli", {"iterations": 3})
    assert zlib.decompress(compressor.compress(data)) == data


def test_progress_observer_counts_stages():
    with tempfile.TemporaryDirectory() as tmp:
        tmp = Path(tmp)
        pipeline = make_pipeline(tmp)
        source = tmp / "in.png"
        write_sample(source)

        with Progress(transient=True) as progress:
            observer = RichProgressObserver(progress, DECODE_STAGES + ENCODE_STAGES)
            pipeline.process_file(source, tmp / "out.png", CompressionTier.LOSSLESS, observer=observer)
            task = progress.tasks[0]
            assert task.completed == DECODE_STAGES + ENCODE_STAGES
            assert task.finished


TESTS = [
    ("Initialization", test_initialization),
    ("Missing config", test_missing_config),
    ("Requires initialize", test_requires_initialize),
    ("Collect jobs", test_collect_jobs),
    ("Failure isolation", test_batch_isolates_failures),
    ("Pillow size limit", test_pillow_size_limit_is_isolated),
    ("Unexpected error", test_unexpected_error_is_isolated),
    ("Quiet DEBUG", test_debug_output_off_by_default),
    ("Passphrase round trip", test_encrypt_then_decrypt_with_passphrase),
    ("Missing salt", test_decrypt_needs_salt_file),
    ("Key providers", test_key_providers),
    ("Pillow input", test_non_png_input_through_pillow),
    ("Palette fallback", test_palette_png_falls_back_to_pillow),
    ("Zopfli backend", test_maximum_tier_backend),
    ("Progress observer", test_progress_observer_counts_stages),
]


if __name__ == "__main__":
    from png_builders import run_suite
    run_suite("VaultPipeline Functional Test", TESTS)
