"""ImageMagick operations: resizing, adjustments, filters and watermarking."""

import os
import re
import subprocess
from typing import List, Optional
from .context import MediaContext, ToolStatus
from .runner import format_command
from ..core.types import fmt_number
from ..core.errors import ImageToolFailure, InvalidResourceParameters

# ImageMagick 7 ships "magick"; version 6 only has "convert"
MAGICK_COMMANDS = ("magick", "convert")

_VERSION_PATTERNS = (
    re.compile(r"Version: ImageMagick ([\d.]+)", re.IGNORECASE),
    re.compile(r"ImageMagick ([\d.]+)", re.IGNORECASE),
    re.compile(r"Version ([\d.]+)", re.IGNORECASE),
)

GRAVITY = {
    "top-left": "NorthWest",
    "top-center": "North",
    "top-right": "NorthEast",
    "center-left": "West",
    "center": "Center",
    "center-right": "East",
    "bottom-left": "SouthWest",
    "bottom-center": "South",
    "bottom-right": "SouthEast",
    "custom": "None",
}

FILTERS = (
    "blur",
    "sharpen",
    "emboss",
    "edge",
    "charcoal",
    "oil-painting",
    "sepia",
    "grayscale",
    "negate",
)


def parse_magick_version(output: str) -> Optional[str]:
    """Extract the ImageMagick version from ``--version`` output."""
    for pattern in _VERSION_PATTERNS:
        match = pattern.search(output)
        if match:
            return match.group(1)
    return None


def _signed(value: float) -> str:
    text = fmt_number(value)
    return f"+{text}" if value > 0 else text


def filter_args(name: str, intensity: float = 1) -> List[str]:
    """ImageMagick arguments for a named artistic filter."""
    if name == "blur":
        return ["-blur", f"0x{fmt_number(intensity * 5)}"]
    if name == "sharpen":
        return ["-sharpen", f"0x{fmt_number(intensity * 2)}"]
    if name == "emboss":
        return ["-emboss", f"0x{fmt_number(intensity * 2)}"]
    if name == "edge":
        return ["-edge", fmt_number(intensity)]
    if name == "charcoal":
        return ["-charcoal", fmt_number(intensity * 2)]
    if name == "oil-painting":
        return ["-paint", fmt_number(intensity * 2)]
    if name == "sepia":
        return ["-sepia-tone", f"{fmt_number(intensity * 80)}%"]
    if name == "grayscale":
        return ["-colorspace", "Gray"]
    if name == "negate":
        return ["-negate"]
    raise InvalidResourceParameters(
        f"Unknown filter: {name}", {"filter": name, "available": list(FILTERS)}
    )


class ImageTool:
    """Runs ImageMagick commands against local image files."""

    def __init__(self, ctx: Optional[MediaContext] = None):
        """
        Initialize image tool.

        Args:
            ctx: Media context; ``ctx.magick`` pins the executable, otherwise
                ``magick`` and then ``convert`` are probed
        """
        self.ctx = ctx or MediaContext()
        self._status: Optional[ToolStatus] = None

    def check(self, refresh: bool = False) -> ToolStatus:
        """
        Detect ImageMagick and its version.

        The result is cached; pass ``refresh=True`` to probe again.
        """
        if self._status is not None and not refresh:
            return self._status

        candidates = (self.ctx.magick,) if self.ctx.magick else MAGICK_COMMANDS
        status = ToolStatus(
            installed=False, message="ImageMagick is not installed or not in PATH"
        )

        for command in candidates:
            try:
                result = subprocess.run(
                    [command, "--version"], capture_output=True, text=True, timeout=10
                )
            except (OSError, subprocess.TimeoutExpired) as e:
                self.ctx.logger.debug(f"ImageMagick probe '{command}' failed: {e}")
                continue

            output = (result.stdout or result.stderr or "").strip()
            if result.returncode != 0 or not output:
                continue

            version = parse_magick_version(output) or "unknown"
            status = ToolStatus(
                installed=True,
                command=command,
                version=version,
                message=f"ImageMagick {version} is installed (command: {command})",
            )
            if command == "convert":
                self.ctx.logger.warning(
                    "ImageMagick 6 detected (convert); ImageMagick 7+ is recommended"
                )
            break

        if not status.installed:
            self.ctx.logger.warning(status.message)

        self._status = status
        return status

    @property
    def command(self) -> str:
        """Detected executable; raises when ImageMagick is missing."""
        status = self.check()
        if not status.installed:
            raise ImageToolFailure(status.message)
        return status.command

    def run(self, args: List[str]) -> str:
        """
        Execute ImageMagick with ``args``.

        Returns:
            The executed command line

        Raises:
            ImageToolFailure: If the tool is missing or exits with an error
        """
        argv = [self.command, *[str(a) for a in args]]
        command = format_command(argv)
        self.ctx.logger.info(f"Running: {command}")

        try:
            result = subprocess.run(argv, capture_output=True, text=True)
        except OSError as e:
            raise ImageToolFailure(
                f"Failed to start {argv[0]}: {e}", {"command": command}
            )

        if result.returncode != 0:
            stderr = (result.stderr or result.stdout or "").strip()
            raise ImageToolFailure(
                f"ImageMagick failed (command: {argv[0]}): {stderr}",
                {"command": command, "exit_code": result.returncode, "stderr": stderr},
            )
        return command

    def identify(self, path: str) -> str:
        """Return ``identify`` output for an image."""
        if self.command == "magick":
            argv = ["magick", "identify", path]
        else:
            argv = ["identify", path]
        result = subprocess.run(argv, capture_output=True, text=True)
        if result.returncode != 0:
            raise ImageToolFailure(
                f"identify failed: {result.stderr.strip()}", {"path": path}
            )
        return result.stdout.strip()

    # Basic operations
    def resize(
        self,
        input_path: str,
        output_path: str,
        width: int,
        height: int,
        quality: int = 90,
        maintain_aspect_ratio: bool = True,
    ) -> str:
        """Resize into a ``width`` x ``height`` box (exact size when not keeping aspect)."""
        geometry = f"{width}x{height}" if maintain_aspect_ratio else f"{width}x{height}!"
        return self.run(
            [input_path, "-resize", geometry, "-quality", str(quality), output_path]
        )

    def crop(
        self, input_path: str, output_path: str, x: int, y: int, width: int, height: int
    ) -> str:
        return self.run(
            [input_path, "-crop", f"{width}x{height}+{x}+{y}", "+repage", output_path]
        )

    def rotate(
        self,
        input_path: str,
        output_path: str,
        degrees: float,
        background_color: str = "transparent",
    ) -> str:
        return self.run(
            [
                input_path,
                "-background",
                background_color,
                "-rotate",
                fmt_number(degrees),
                output_path,
            ]
        )

    def convert(self, input_path: str, output_path: str, quality: int = 90) -> str:
        """Re-encode; the target format follows the output file extension."""
        return self.run([input_path, "-quality", str(quality), output_path])

    def adjust(
        self,
        input_path: str,
        output_path: str,
        brightness: float = 0,
        contrast: float = 0,
        saturation: float = 0,
    ) -> str:
        """
        Adjust brightness, contrast and saturation.

        Args:
            brightness: -100..100, 0 leaves brightness unchanged
            contrast: -100..100, 0 leaves contrast unchanged
            saturation: Percent change relative to the original saturation
        """
        args = [input_path]
        if brightness or contrast:
            args.extend(
                ["-brightness-contrast", f"{_signed(brightness)}x{_signed(contrast)}"]
            )
        if saturation:
            args.extend(["-modulate", f"100,{fmt_number(100 + saturation)}"])
        args.append(output_path)
        return self.run(args)

    def apply_filter(
        self, input_path: str, output_path: str, filter_type: str, intensity: float = 1
    ) -> str:
        return self.run([input_path, *filter_args(filter_type, intensity), output_path])

    # Watermarks
    def watermark_text(
        self,
        input_path: str,
        output_path: str,
        text: str,
        font_size: int = 24,
        font: Optional[str] = None,
        color: str = "white",
        stroke_color: Optional[str] = None,
        stroke_width: int = 0,
        position: str = "bottom-right",
        x: Optional[int] = None,
        y: Optional[int] = None,
        margin_x: int = 10,
        margin_y: int = 10,
        opacity: float = 0.5,
        angle: float = 0,
    ) -> str:
        """
        Stamp text on an image.

        The text is first rendered to a transparent intermediate image, which
        is then composited at ``position`` (or at ``x``/``y`` when both are set).

        Returns:
            Executed commands joined by ``"; "``
        """
        if not text:
            raise InvalidResourceParameters("Watermark text must not be empty")

        text_image = self.ctx.temp_path(".png", prefix="ffc_text_")
        commands = []
        try:
            args = ["-background", "transparent", "-pointsize", str(font_size)]
            if font:
                args.extend(["-font", font])
            args.extend(["-fill", color])
            if stroke_color and stroke_width > 0:
                args.extend(["-strokewidth", str(stroke_width), "-stroke", stroke_color])
            if "\n" in text:
                # caption: wraps multi-line text and needs a width
                args.extend(["-size", "800x", f"caption:{text}"])
            else:
                args.append(f"label:{text}")
            args.append(text_image)
            commands.append(self.run(args))

            if not os.path.exists(text_image) or os.path.getsize(text_image) == 0:
                raise ImageToolFailure(
                    "Text image was not created; the font may not support the text"
                )

            if opacity < 1.0:
                commands.append(self.run([text_image, *self._alpha_args(opacity), text_image]))
            if angle:
                commands.append(
                    self.run([text_image, "-rotate", fmt_number(angle), text_image])
                )

            commands.append(
                self.run(
                    [
                        input_path,
                        *self._placement_args(text_image, position, x, y, margin_x, margin_y),
                        output_path,
                    ]
                )
            )
        finally:
            self._discard(text_image)

        return "; ".join(commands)

    def watermark_image(
        self,
        input_path: str,
        output_path: str,
        watermark_path: str,
        scale: float = 1.0,
        position: str = "bottom-right",
        x: Optional[int] = None,
        y: Optional[int] = None,
        margin_x: int = 10,
        margin_y: int = 10,
        opacity: float = 0.5,
        angle: float = 0,
        repeat: bool = False,
        tile_size: Optional[int] = None,
    ) -> str:
        """
        Overlay another image, optionally tiled across the whole picture.

        Returns:
            Executed commands joined by ``"; "``
        """
        if not os.path.exists(watermark_path):
            raise InvalidResourceParameters(
                "Watermark image not found", {"path": watermark_path}
            )

        processed = self.ctx.temp_path(".png", prefix="ffc_wm_")
        commands = []
        try:
            args = [watermark_path, "-resize", f"{round(scale * 100)}%"]
            if angle:
                args.extend(["-rotate", fmt_number(angle)])
            if opacity < 1.0:
                args.extend(self._alpha_args(opacity))
            args.append(processed)
            commands.append(self.run(args))

            if repeat:
                size = f"{tile_size}x{tile_size}" if tile_size else "100x100"
                overlay = [
                    "(",
                    processed,
                    "-resize",
                    size,
                    ")",
                    "-tile",
                    "-gravity",
                    GRAVITY.get(position, "SouthEast"),
                    "-geometry",
                    f"+{margin_x}+{margin_y}",
                    "-composite",
                ]
            else:
                overlay = self._placement_args(processed, position, x, y, margin_x, margin_y)

            commands.append(self.run([input_path, *overlay, output_path]))
        finally:
            self._discard(processed)

        return "; ".join(commands)

    @staticmethod
    def _alpha_args(opacity: float) -> List[str]:
        alpha = round(opacity * 100)
        return ["-alpha", "set", "-channel", "A", "-evaluate", "multiply", f"{alpha}%", "+channel"]

    @staticmethod
    def _placement_args(
        overlay: str,
        position: str,
        x: Optional[int],
        y: Optional[int],
        margin_x: int,
        margin_y: int,
    ) -> List[str]:
        if x is not None and y is not None:
            return ["-gravity", "None", overlay, "-geometry", f"+{x}+{y}", "-composite"]
        gravity = GRAVITY.get(position, "SouthEast")
        return [
            "-gravity",
            gravity,
            overlay,
            "-geometry",
            f"+{margin_x}+{margin_y}",
            "-composite",
        ]

    def _discard(self, path: str) -> None:
        try:
            if os.path.exists(path):
                os.remove(path)
        except OSError as e:
            self.ctx.logger.warning(f"Failed to remove intermediate image {path}: {e}")
