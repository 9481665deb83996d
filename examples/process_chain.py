#!/usr/bin/env python3
"""
Processing chain example for ffcompose.

Resizes an uploaded video, stamps a watermark on it and extracts a preview
frame, reusing each step's output as the next step's input.
"""

import logging
import sys
from ffcompose import ComposeService, MediaContext, Workspace


def main():
    """Run processing chain example."""
    if len(sys.argv) < 3:
        print("Usage: process_chain.py WORKSPACE_DIR VIDEO_IN_UPLOADS [WATERMARK_IN_UPLOADS]")
        return

    logging.basicConfig(level=logging.INFO)

    workspace = Workspace(sys.argv[1])
    service = ComposeService(workspace, MediaContext.from_env())

    for name, tool in service.status().model_dump().items():
        print(f"{name}: {tool['message']}")

    operations = [{"type": "resize", "params": {"width": 960, "height": 540}}]
    if len(sys.argv) > 3:
        operations.append(
            {
                "type": "addWatermark",
                "params": {"watermarkPath": sys.argv[3], "position": "top-right", "opacity": 0.6},
            }
        )
    operations.append({"type": "extractFrame", "params": {"time": 1, "format": "png"}})

    result = service.process(sys.argv[2], operations)

    for command in result.commands:
        print(command)
    print(f"Output: {result.path}")


if __name__ == "__main__":
    main()
