"""Run one recorded clip through the voice command pipeline and print the result.

Usage: python scripts/run_voice_command.py path/to/clip.webm [--content-type audio/webm]
"""

import argparse
import asyncio
import json
import mimetypes
import os
import sys

# Add project root to path so we can import fieldvoice without installing it
sys.path.append(os.getcwd())

from fieldvoice.pipelines.voice import AudioClip, VoiceCommandPipeline  # noqa: E402
from fieldvoice.pipelines.voice.ingestion import DEFAULT_CONTENT_TYPE  # noqa: E402


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", help="Audio file to process")
    parser.add_argument(
        "--content-type",
        default=None,
        help="MIME type of the file (guessed from the extension when omitted)",
    )
    return parser.parse_args(argv)


async def main(argv: list[str]) -> int:
    args = _parse_args(argv)

    if not os.path.exists(args.path):
        print(f"File '{args.path}' not found.")
        return 1

    content_type = args.content_type or mimetypes.guess_type(args.path)[0] or DEFAULT_CONTENT_TYPE
    with open(args.path, "rb") as f:
        audio_bytes = f.read()

    print(f"Processing {len(audio_bytes)} bytes as {content_type}...")
    pipeline = VoiceCommandPipeline()
    result = await pipeline.run(AudioClip(data=audio_bytes, content_type=content_type))

    print("\n--- Pipeline Result ---")
    print(json.dumps(result.to_payload(), indent=2, ensure_ascii=False))
    print("States:", " -> ".join(state.value for state in result.history))
    print("-----------------------")
    return 0 if result.success else 2


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1:])))
