#!/usr/bin/env python3
"""
Basic usage example for ffcompose.

This example demonstrates:
1. Building a slideshow from two images with fade transitions
2. Adding a background music track
3. Previewing the FFmpeg command and rendering the video
"""

import logging
import sys
from ffcompose import Composition, OutputOptions, MediaContext


def main():
    """Run basic usage example."""
    if len(sys.argv) < 4:
        print("Usage: basic_usage.py IMAGE1 IMAGE2 AUDIO [OUTPUT]")
        return

    image1, image2, audio = sys.argv[1:4]
    output_path = sys.argv[4] if len(sys.argv) > 4 else "slideshow.mp4"

    logging.basicConfig(level=logging.INFO)

    with MediaContext.from_env() as ctx:
        status = ctx.check_ffmpeg()
        if not status.installed:
            print(status.message)
            return

        options = OutputOptions.h264(crf=20, width=1280, height=720, fps=25)
        composition = Composition(options, ctx)

        composition.add_image(image1, duration=3, transition="fade")
        composition.add_image(image2, duration=3, transition="fade", scale_mode="fill")
        composition.add_audio(audio, volume=50, fade="both", fade_duration=1)

        print("FFmpeg command:")
        print(composition.dry_run(output_path))

        def progress_callback(progress):
            print(f"Progress: {progress:.1f}%")

        result = composition.to_file(output_path, on_progress=progress_callback)

    print("✅ Composition completed!")
    print(f"Output saved to: {result.output_path}")


if __name__ == "__main__":
    main()
