#!/usr/bin/env python3
"""
Batch Moderation Script

Runs local image files (or URLs) through the PhotoGuard moderation
pipeline and prints one line per image plus a status summary.

This script:
1. Expands directories into the image files they contain
2. Builds an orchestrator from the environment (.env) settings
3. Loads the local model, if enabled, before the first call
4. Moderates every image concurrently
5. Exits with status 1 if any image was REJECTED

Usage:
    python scripts/moderate_images.py photos/                     # Whole directory
    python scripts/moderate_images.py a.jpg b.png --verbose       # Show reasons/scores
    python scripts/moderate_images.py a.jpg --provider GOOGLE_VISION
    python scripts/moderate_images.py a.jpg --no-fallback
"""

import argparse
import asyncio
import sys
import time
from collections import Counter
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from photoguard.config import configure_logging, get_settings
from photoguard.moderation.models import ModerationProvider, ModerationResult, ModerationStatus
from photoguard.moderation.orchestrator import ModerationOrchestrator
from photoguard.storage import ImageStore, is_remote

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif", ".bmp"}

PROVIDER_FLAGS = {
    ModerationProvider.LOCAL_NSFW: "local_nsfw_moderation_enabled",
    ModerationProvider.GOOGLE_VISION: "google_vision_moderation_enabled",
    ModerationProvider.AWS_REKOGNITION: "aws_rekognition_moderation_enabled",
}


def collect_images(paths: list[str]) -> list[str]:
    """Expand directories into sorted image files; keep files and URLs as given."""
    images: list[str] = []
    for raw in paths:
        if is_remote(raw):
            images.append(raw)
            continue
        path = Path(raw)
        if path.is_dir():
            images.extend(
                str(p)
                for p in sorted(path.iterdir())
                if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
            )
        else:
            images.append(str(path))
    return images


def local_roots(images: list[str]) -> list[Path]:
    """Directories holding the local images named on the command line."""
    return sorted({Path(ref).resolve().parent for ref in images if not is_remote(ref)})


def build_orchestrator(
    provider: ModerationProvider | None, no_fallback: bool, image_store: ImageStore
) -> ModerationOrchestrator:
    """Build an orchestrator from settings with the command-line overrides applied."""
    updates: dict = {}
    if provider is not None:
        updates["photo_moderation_provider"] = provider
        updates[PROVIDER_FLAGS[provider]] = True
    if no_fallback:
        updates["photo_moderation_fallback"] = False

    settings = get_settings().model_copy(update=updates)
    return ModerationOrchestrator.from_settings(settings, image_store)


def format_result(index: int, total: int, ref: str, result: ModerationResult, verbose: bool) -> str:
    line = (
        f"[{index:3d}/{total}] {result.status.value:12s} | "
        f"{result.confidence:5.0f}% | {result.provider:15s} | {Path(ref).name}"
    )
    if verbose:
        if result.reasons:
            line += "\n        reasons: " + "; ".join(result.reasons)
        if result.scores:
            scores = ", ".join(f"{k}={v:.1f}" for k, v in result.scores.items())
            line += f"\n        scores:  {scores}"
    return line


async def run(
    images: list[str], orchestrator: ModerationOrchestrator, image_store: ImageStore, verbose: bool
) -> Counter:
    """Moderate all images and print per-image lines."""
    print("\nInitializing providers...")
    await orchestrator.initialize(wait=True)

    status = orchestrator.get_provider_status()
    enabled = [name for name, info in status["providers"].items() if info["enabled"]]
    print(f"Preferred: {status['preferred']} | Fallback: {status['fallback_enabled']}")
    print(f"Enabled providers: {', '.join(enabled) or 'none'}")

    print(f"\nModerating {len(images)} images...")
    print("-" * 60)

    start_time = time.time()
    try:
        results = await orchestrator.moderate_batch(images)
    finally:
        await image_store.aclose()
    elapsed = time.time() - start_time

    for i, (ref, result) in enumerate(zip(images, results), 1):
        print(format_result(i, len(images), ref, result, verbose))

    counts = Counter(result.status.value for result in results)
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    for moderation_status in ModerationStatus:
        print(f"  {moderation_status.value:<14} {counts.get(moderation_status.value, 0):>4}")
    degraded = sum(1 for result in results if result.is_degraded)
    if degraded:
        print(f"  (degraded: {degraded} - no provider answered)")
    print(f"\nTotal time: {elapsed:.2f}s")
    return counts


def main():
    """Main entry point for the batch moderation script."""

    parser = argparse.ArgumentParser(
        description="Moderate image files through the PhotoGuard pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/moderate_images.py photos/                  Moderate a directory
  python scripts/moderate_images.py a.jpg --verbose          Show reasons and scores
  python scripts/moderate_images.py a.jpg --provider AWS_REKOGNITION
  python scripts/moderate_images.py a.jpg --no-fallback      Preferred provider only
        """,
    )

    parser.add_argument("paths", nargs="+", help="Image files, directories or URLs")
    parser.add_argument(
        "--provider",
        type=str.upper,
        choices=[p.value for p in ModerationProvider],
        help="Preferred provider (also enables it)",
    )
    parser.add_argument(
        "--no-fallback",
        action="store_true",
        help="Do not try other providers when the preferred one fails",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show reasons and scores for each image",
    )

    args = parser.parse_args()

    configure_logging(get_settings())

    print("=" * 60)
    print("PhotoGuard Batch Moderation")
    print("=" * 60)

    images = collect_images(args.paths)
    if not images:
        print("ERROR: No images found")
        sys.exit(1)

    provider = ModerationProvider(args.provider) if args.provider else None
    image_store = ImageStore(local_roots=local_roots(images))
    orchestrator = build_orchestrator(provider, args.no_fallback, image_store)

    counts = asyncio.run(run(images, orchestrator, image_store, args.verbose))

    if counts.get(ModerationStatus.REJECTED.value):
        sys.exit(1)


if __name__ == "__main__":
    main()
