#!/usr/bin/env python3
"""
PNGVault v0.1: PNG optimizer with optional image-data encryption.

This is the batch driver that wires the pngcore codec to files on disk,
passphrase-derived keys and progress reporting.

Architecture:
- Factory pattern for compressors, ciphers and key providers
- Protocol-based contracts for type safety
- The codec only ever sees bytes, a tier and an optional 32-byte key

Per file:
1. Load image (pngcore decoder, or Pillow for other formats)
2. Preprocess (alpha zeroing, tier quantization)
3. Per-row filter selection
4. Deflate (zlib fast / zlib best / zopfli)
5. Optional AES-256-GCM on each IDAT payload
6. Write IHDR, IDAT, IEND

Usage:
    from pngvault import VaultPipeline
    from pngcore import CompressionTier

    pipeline = VaultPipeline()
    pipeline.initialize()
    pipeline.process_file(Path("in.png"), Path("out.png"), CompressionTier.BALANCED)

Or from command line:
    python pngvault.py compress photos/ optimized/ --tier maximum
    python pngvault.py compress photos/ sealed/ --encrypt
    python pngvault.py decrypt sealed/ restored/
"""

import getpass
import json
import os
import threading
import traceback
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, UnidentifiedImageError
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from engines.compression import get_compressor
from engines.encryption import get_cipher
from engines.keys import get_key_provider
from pngcore import CodecError, CompressionTier, DecodedImage, FormatError, KeyMaterial, UnsupportedFeature
from pngcore.decoder import read_from_file
from pngcore.encoder import save
from pngcore.progress import DECODE_STAGES, ENCODE_STAGES, NullProgressObserver, ProgressObserver
from utilities import CPU_and_Mem_usage, Print, human_size, set_log_level

IMAGE_SUFFIXES = {'.png', '.jpg', '.jpeg', '.bmp', '.gif', '.tif', '.tiff', '.webp'}

PASSWORD_ENV = "PNGVAULT_PASSWORD"


class RichProgressObserver:
    """
    Progress bar shared by every worker in a batch.

    Updates are serialized with a lock so concurrent files can report
    into the same bar.
    """

    def __init__(self, progress: Progress, total: int):
        self._progress = progress
        self._lock = threading.Lock()
        self._task = progress.add_task("starting", total=total)

    def update(self, stage: str, increment: int = 1) -> None:
        with self._lock:
            self._progress.update(self._task, advance=increment, description=stage)


class VaultPipeline:
    """
    Batch driver for PNGVault.

    Attributes:
        config: Loaded configuration dictionary
        compressors: Initialized deflate backend per compression tier
        cipher: Initialized payload cipher
        key_provider: Initialized passphrase key provider
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize pipeline with configuration.

        Args:
            config_path: Path to config.json. If None, uses default location.
        """
        self.config = self._load_config(config_path)
        self.compressors = {}
        self.cipher = None
        self.key_provider = None
        self._initialized = False

    def _load_config(self, config_path: Optional[Path]) -> dict:
        """Load configuration from JSON file."""
        if config_path is None:
            config_path = Path(__file__).parent / "config" / "config.json"

        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}\n"
                f"Create config/config.json or specify path with config_path parameter."
            )

        with open(config_path) as f:
            config = json.load(f)

        Print("DEBUG", f"Loaded configuration v{config.get('version', 'unknown')}")
        return config

    def initialize(
        self,
        cipher_name: Optional[str] = None,
        key_provider_name: Optional[str] = None
    ) -> None:
        """
        Initialize compressors, cipher and key provider.

        This must be called before process_file() or process_batch().

        Args:
            cipher_name: Payload cipher (default: from config)
            key_provider_name: Key derivation provider (default: from config)

        Raises:
            ValueError: If a named engine is not registered
        """
        Print("STARTING", f"Initializing PNGVault v{self.config.get('version', '0.1.0')} pipeline")

        for tier in CompressionTier:
            tier_config = self.config.get('tiers', {}).get(tier.label, {})
            name = tier_config.get('compressor', tier.backend)
            comp_config = self.config.get('compression', {}).get(name, {})
            self.compressors[tier] = get_compressor(name, comp_config)
            Print("DEBUG", f"Tier {tier.label}: compressor {name}")

        enc_config = self.config.get('encryption', {})
        cipher_name = cipher_name or enc_config.get('cipher', 'aes-256-gcm')
        self.cipher = get_cipher(cipher_name, enc_config.get(cipher_name, {}))
        Print("SUCCESS", f"Cipher: {self.cipher.name}")

        kdf_config = self.config.get('key_derivation', {})
        key_provider_name = key_provider_name or kdf_config.get('provider', 'argon2id')
        self.key_provider = get_key_provider(key_provider_name, kdf_config.get(key_provider_name, {}))
        Print("SUCCESS", f"Key provider: {self.key_provider.name}")

        self._initialized = True
        Print("SUCCESS", "Pipeline initialized")

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError("Pipeline not initialized. Call initialize() first.")

    # =====================================================================
    # Keys
    # =====================================================================

    def default_salt_path(self, location: Path) -> Path:
        """Salt file that sits next to a file or inside a directory."""
        location = Path(location)
        directory = location if location.is_dir() or not location.suffix else location.parent
        return directory / self.config.get('key_derivation', {}).get('salt_file', 'pngvault.salt')

    def derive_key(self, passphrase: str, salt_path: Path, create: bool = False) -> KeyMaterial:
        """
        Derive the 32-byte key from a passphrase and a persisted salt.

        Args:
            passphrase: User secret
            salt_path: Where the salt is stored
            create: Generate and store a new salt if none exists (encryption side)

        Raises:
            FileNotFoundError: If the salt file is missing and create is False
        """
        self._require_initialized()
        salt_path = Path(salt_path)

        if salt_path.exists():
            salt = salt_path.read_bytes()
            Print("DEBUG", f"Using salt from {salt_path}")
        elif create:
            salt = self.key_provider.generate_salt()
            salt_path.parent.mkdir(parents=True, exist_ok=True)
            salt_path.write_bytes(salt)
            Print("INFO", f"Wrote new salt: {salt_path}")
        else:
            raise FileNotFoundError(
                f"Salt file not found: {salt_path}\n"
                f"Decryption needs the salt written when the images were encrypted."
            )

        Print("PROGRESS", f"Deriving key with {self.key_provider.name}...")
        return KeyMaterial(self.key_provider.derive_key(passphrase.encode('utf-8'), salt))

    # =====================================================================
    # Files
    # =====================================================================

    def collect_jobs(self, input_path: Path, output_path: Path) -> List[Tuple[Path, Path]]:
        """
        Map an input file or directory onto output .png paths.

        A single input file maps to output_path itself unless output_path
        is a directory or has no suffix. A directory input maps every image file
        directly inside it into output_path.

        Raises:
            FileNotFoundError: If input_path does not exist
            ValueError: If a directory contains no images
        """
        input_path = Path(input_path)
        output_path = Path(output_path)

        if not input_path.exists():
            raise FileNotFoundError(f"Input not found: {input_path}")

        if input_path.is_file():
            if output_path.is_dir() or not output_path.suffix:
                return [(input_path, output_path / input_path.with_suffix('.png').name)]
            return [(input_path, output_path)]

        inputs = sorted(
            p for p in input_path.iterdir()
            if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES
        )
        if not inputs:
            raise ValueError(f"No images found in {input_path}")
        return [(p, output_path / p.with_suffix('.png').name) for p in inputs]

    def load_image(
        self,
        path: Path,
        key: Optional[KeyMaterial] = None,
        observer: Optional[ProgressObserver] = None
    ) -> DecodedImage:
        """
        Load an image into canonical RGBA.

        PNGs go through pngcore. Other formats, and unencrypted PNGs using
        features pngcore rejects (palette, grayscale, 16-bit, interlace),
        are read with Pillow when pillow_fallback is on.
        """
        path = Path(path)
        processing = self.config.get('processing', {})
        fallback = processing.get('pillow_fallback', True)

        if path.suffix.lower() == '.png':
            try:
                return read_from_file(
                    path,
                    key=key,
                    verify_crc=processing.get('verify_crc', False),
                    cipher=self.cipher,
                    observer=observer
                )
            except UnsupportedFeature as e:
                if key is not None or not fallback:
                    raise
                Print("WARNING", f"{path.name}: {e}; reading with Pillow")
        elif key is not None:
            raise FormatError(f"Encrypted input must be a PNG file: {path}")
        elif not fallback:
            raise UnsupportedFeature(f"Not a PNG file and Pillow fallback is disabled: {path}")

        try:
            with Image.open(path) as img:
                image = DecodedImage.from_pil(img)
        except UnidentifiedImageError as e:
            raise FormatError(f"Not a recognized image: {path}: {e}")
        except (Image.DecompressionBombError, SyntaxError) as e:
            raise FormatError(f"Could not load image {path}: {type(e).__name__}: {e}")

        if observer is not None:
            observer.update("read", DECODE_STAGES)
        return image

    def process_file(
        self,
        input_path: Path,
        output_path: Path,
        tier: CompressionTier,
        encrypt_key: Optional[KeyMaterial] = None,
        decrypt_key: Optional[KeyMaterial] = None,
        observer: Optional[ProgressObserver] = None
    ) -> dict:
        """
        Decode one image and re-encode it at the given tier.

        Args:
            input_path: Source image
            output_path: Destination PNG
            tier: Compression tier for the output
            encrypt_key: Encrypt the output image data with this key
            decrypt_key: The input image data is encrypted with this key
            observer: Receives stage events

        Returns:
            dict with processing statistics:
                - input, output: Paths as strings
                - input_size, output_size: Bytes
                - compression_ratio: input_size / output_size
                - width, height: Pixels
                - encrypted: Whether the output is encrypted
                - processing_time: Seconds

        Raises:
            CodecError: If decoding or encoding fails
            RuntimeError: If pipeline not initialized
        """
        self._require_initialized()
        input_path = Path(input_path)
        output_path = Path(output_path)
        observer = observer or NullProgressObserver()
        processing = self.config.get('processing', {})

        start_time = datetime.now()
        Print("STATE", f"Processing: {input_path.name}")

        image = self.load_image(input_path, key=decrypt_key, observer=observer)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_size = save(
            image,
            output_path,
            tier=tier,
            key=encrypt_key,
            compressor=self.compressors.get(tier),
            cipher=self.cipher,
            observer=observer,
            filter_workers=processing.get('filter_workers', 1) or 1,
            max_idat_size=processing.get('max_idat_size')
        )

        input_size = input_path.stat().st_size
        processing_time = (datetime.now() - start_time).total_seconds()

        stats = {
            'input': str(input_path),
            'output': str(output_path),
            'input_size': input_size,
            'output_size': output_size,
            'compression_ratio': input_size / output_size if output_size > 0 else 0,
            'width': image.width,
            'height': image.height,
            'encrypted': encrypt_key is not None,
            'processing_time': processing_time,
        }

        Print("SUCCESS",
            f"{input_path.name}: {human_size(input_size)} -> {human_size(output_size)} "
            f"({processing_time:.2f}s)"
        )
        return stats

    def process_batch(
        self,
        jobs: List[Tuple[Path, Path]],
        tier: CompressionTier,
        encrypt_key: Optional[KeyMaterial] = None,
        decrypt_key: Optional[KeyMaterial] = None,
        workers: Optional[int] = None,
        show_progress: bool = True
    ) -> List[dict]:
        """
        Process many files concurrently.

        One file failing never stops the others: its entry in the result
        list carries success=False and the error message.

        Returns:
            One dict per job, in job order, each with 'success' set
        """
        self._require_initialized()
        if not jobs:
            raise ValueError("No jobs provided")

        if workers is None:
            workers = self.config.get('processing', {}).get('batch_workers') or os.cpu_count() or 1
        workers = max(1, min(workers, len(jobs)))

        Print("STATE", f"Processing {len(jobs)} file{'s' if len(jobs) != 1 else ''} "
                       f"at tier {tier.label} with {workers} worker{'s' if workers != 1 else ''}")

        def failure(input_path: Path, output_path: Path, error: Exception) -> dict:
            return {
                'input': str(input_path),
                'output': str(output_path),
                'success': False,
                'error': f"{type(error).__name__}: {error}",
            }

        def run(job: Tuple[Path, Path], observer: ProgressObserver) -> dict:
            input_path, output_path = job
            try:
                stats = self.process_file(
                    input_path, output_path, tier,
                    encrypt_key=encrypt_key,
                    decrypt_key=decrypt_key,
                    observer=observer
                )
                stats['success'] = True
                return stats
            except (CodecError, OSError, ValueError, RuntimeError) as e:
                Print("FAILURE", f"{Path(input_path).name}: {type(e).__name__}: {e}")
                return failure(input_path, output_path, e)
            except Exception as e:
                Print("EXCEPTION", f"{Path(input_path).name}: unexpected {type(e).__name__}: {e}")
                Print("DEBUG", traceback.format_exc())
                return failure(input_path, output_path, e)

        total = len(jobs) * (DECODE_STAGES + ENCODE_STAGES)
        start_time = datetime.now()

        if show_progress:
            progress = Progress(
                TextColumn("{task.description:<14}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                transient=True
            )
            with progress:
                observer = RichProgressObserver(progress, total)
                results = self._run_jobs(run, jobs, observer, workers)
        else:
            results = self._run_jobs(run, jobs, NullProgressObserver(), workers)

        succeeded = sum(1 for r in results if r['success'])
        elapsed = (datetime.now() - start_time).total_seconds()

        Print("COMPLETED", f"{succeeded}/{len(results)} files processed in {elapsed:.1f}s")
        ok = [r for r in results if r['success']]
        if ok:
            total_in = sum(r['input_size'] for r in ok)
            total_out = sum(r['output_size'] for r in ok)
            Print("INFO", f"Total: {human_size(total_in)} -> {human_size(total_out)}")
        Print("DEBUG", CPU_and_Mem_usage())
        return results

    @staticmethod
    def _run_jobs(run, jobs, observer, workers: int) -> List[dict]:
        if workers == 1:
            return [run(job, observer) for job in jobs]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(lambda job: run(job, observer), jobs))


def _read_passphrase(args) -> str:
    if args.password:
        return args.password
    if os.environ.get(PASSWORD_ENV):
        return os.environ[PASSWORD_ENV]
    return getpass.getpass("Passphrase: ")


def main():
    """Command-line entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description='PNGVault v0.1: PNG optimizer with optional image-data encryption',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python pngvault.py compress input.png output.png
  python pngvault.py compress photos/ out/ --tier maximum --jobs 4
  python pngvault.py compress photos/ sealed/ --encrypt
  python pngvault.py decrypt sealed/ restored/
        """
    )

    subparsers = parser.add_subparsers(dest='command', required=True)
    for command, help_text in (
        ('compress', 'Optimize images, optionally encrypting the image data'),
        ('decrypt', 'Decrypt images written with compress --encrypt'),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument('input', type=Path, help='Input image file or directory')
        sub.add_argument('output', type=Path, help='Output PNG file or directory')
        sub.add_argument('--tier', choices=[t.label for t in CompressionTier],
                         default='lossless' if command == 'decrypt' else 'balanced',
                         help='Compression tier')
        sub.add_argument('--password', default=None,
                         help=f'Passphrase (default: ${PASSWORD_ENV} or prompt)')
        sub.add_argument('--salt-file', type=Path, default=None,
                         help='Salt file (default: pngvault.salt next to the encrypted images)')
        sub.add_argument('--kdf', choices=['argon2id', 'pbkdf2'], default=None,
                         help='Key derivation (default: from config)')
        sub.add_argument('--jobs', type=int, default=None, help='Parallel files (default: CPU count)')
        sub.add_argument('--verify-crc', action='store_true', help='Reject chunks with bad CRCs')
        sub.add_argument('--config', type=Path, default=None, help='Path to config.json')
        sub.add_argument('--verbose', action='store_true', help='Show DEBUG output')
        if command == 'compress':
            sub.add_argument('--encrypt', action='store_true', help='Encrypt image data (AES-256-GCM)')

    args = parser.parse_args()
    set_log_level(args.verbose)

    try:
        pipeline = VaultPipeline(config_path=args.config)
        if args.verify_crc:
            pipeline.config.setdefault('processing', {})['verify_crc'] = True
        pipeline.initialize(key_provider_name=args.kdf)

        tier = CompressionTier.from_name(args.tier)
        jobs = pipeline.collect_jobs(args.input, args.output)

        encrypt_key = decrypt_key = None
        if args.command == 'compress' and args.encrypt:
            salt_path = args.salt_file or pipeline.default_salt_path(args.output)
            encrypt_key = pipeline.derive_key(_read_passphrase(args), salt_path, create=True)
        elif args.command == 'decrypt':
            salt_path = args.salt_file or pipeline.default_salt_path(args.input)
            decrypt_key = pipeline.derive_key(_read_passphrase(args), salt_path)

        results = pipeline.process_batch(
            jobs, tier,
            encrypt_key=encrypt_key,
            decrypt_key=decrypt_key,
            workers=args.jobs
        )

        return 0 if all(r['success'] for r in results) else 3

    except FileNotFoundError as e:
        Print("FAILURE", str(e))
        return 1
    except (RuntimeError, ValueError) as e:
        Print("FAILURE", str(e))
        return 2
    except KeyboardInterrupt:
        Print("WARNING", "Interrupted by user")
        return 130


if __name__ == "__main__":
    import sys
    sys.exit(main())
