"""Output options for compositions with FFmpeg encoding argument generation."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import List, Optional, Tuple
from .filters import Canvas

# Codecs that take a preset and a constant rate factor
CRF_CODECS = ("libx264", "libx265")
CRF_RANGE = (0, 51)


class OutputOptions(BaseModel):
    """Target canvas and encoder settings for a composition."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    width: int = 1280
    height: int = 720
    resolution: Optional[str] = None  # "WxH", overrides width/height
    fps: float = 25
    background_color: str = "#000000"

    video_codec: str = "libx264"
    video_preset: str = "medium"
    video_crf: Optional[int] = 23
    video_bitrate: str = "2000k"

    audio_codec: str = "aac"
    audio_bitrate: str = "192k"
    audio_sample_rate: int = 44100
    audio_channels: int = 2

    @staticmethod
    def h264(crf: int = 23, preset: str = "medium", **kwargs) -> "OutputOptions":
        """
        H.264 output for broad compatibility.

        Args:
            crf: Constant Rate Factor (lower = higher quality)
            preset: Encoding preset (ultrafast ... veryslow)

        Returns:
            Output options using libx264
        """
        return OutputOptions(video_codec="libx264", video_crf=crf, video_preset=preset, **kwargs)

    @staticmethod
    def h265(crf: int = 28, preset: str = "medium", **kwargs) -> "OutputOptions":
        """H.265 output; smaller files at the same quality."""
        return OutputOptions(video_codec="libx265", video_crf=crf, video_preset=preset, **kwargs)

    @staticmethod
    def bitrate(codec: str, bitrate: str = "2000k", **kwargs) -> "OutputOptions":
        """Fixed-bitrate output for codecs without CRF support (e.g. mpeg4)."""
        return OutputOptions(video_codec=codec, video_crf=None, video_bitrate=bitrate, **kwargs)

    def size(self) -> Tuple[int, int]:
        """Canvas size, taking ``resolution`` into account when well formed."""
        width, height = self.width, self.height
        if self.resolution:
            parts = self.resolution.lower().split("x")
            if len(parts) == 2:
                try:
                    width = int(parts[0]) or width
                    height = int(parts[1]) or height
                except ValueError:
                    pass  # Malformed resolution string keeps width/height
        return width, height

    @property
    def ffmpeg_color(self) -> str:
        """Background color in FFmpeg syntax (``#RRGGBB`` -> ``0xRRGGBB``)."""
        return self.background_color.replace("#", "0x")

    @property
    def uses_crf(self) -> bool:
        """Whether the video codec is driven by CRF instead of bitrate."""
        return (
            self.video_codec in CRF_CODECS
            and self.video_crf is not None
            and CRF_RANGE[0] <= self.video_crf <= CRF_RANGE[1]
        )

    def canvas(self) -> Canvas:
        """Canvas geometry used by the filter builders."""
        width, height = self.size()
        return Canvas(width=width, height=height, fps=self.fps, color=self.ffmpeg_color)

    def video_args(self) -> List[str]:
        """
        Generate video encoding arguments.

        Returns:
            Codec, quality, pixel format and ``-shortest`` flags
        """
        args = ["-vcodec", self.video_codec]

        if self.video_codec in CRF_CODECS:
            args.extend(["-preset", self.video_preset])
            if self.uses_crf:
                args.extend(["-crf", str(self.video_crf)])
            else:
                args.extend(["-b:v", self.video_bitrate])
        else:
            args.extend(["-b:v", self.video_bitrate])

        args.extend(["-pix_fmt", "yuv420p", "-shortest"])
        return args

    def audio_args(self) -> List[str]:
        """
        Generate audio encoding arguments.

        Returns:
            ``-acodec copy`` for stream copy, otherwise codec, bitrate,
            sample rate and channel count
        """
        if self.audio_codec == "copy":
            return ["-acodec", "copy"]
        return [
            "-acodec",
            self.audio_codec,
            "-b:a",
            self.audio_bitrate,
            "-ar",
            str(self.audio_sample_rate),
            "-ac",
            str(self.audio_channels),
        ]
