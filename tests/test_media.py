"""Tests for composition building: resources, filters, assembly and invocation."""

import io
import os
import sys
import time
import pytest
from unittest.mock import Mock, patch
from ffcompose.media import (
    Resource,
    Composition,
    OutputOptions,
    MediaContext,
    ProcessRunner,
    classify,
    assemble,
    build_visual_chain,
    build_audio_chain,
    resolve_ffmpeg_path,
)
from ffcompose.media.filters import Canvas
from ffcompose.media.invocation import InvocationBuilder, input_args
from ffcompose.media.runner import parse_progress, progress_percent
from ffcompose.core import (
    ResourceKind,
    ResourceNotFound,
    InvalidResourceParameters,
    EmptyResourceList,
    NoVisualContent,
    EncoderLaunchFailure,
    EncoderProcessFailure,
    EncoderTimeout,
)

CANVAS = Canvas(width=1280, height=720, fps=25, color="0x000000")

FIT_PAD = (
    "scale=1280:720:force_original_aspect_ratio=decrease,"
    "pad=1280:720:(ow-iw)/2:(oh-ih)/2:color=0x000000"
)


def image(path="/media/a.png", duration=3, **kw):
    return Resource(kind=ResourceKind.IMAGE, path=path, duration=duration, **kw)


def video(path="/media/clip.mp4", **kw):
    return Resource(kind=ResourceKind.VIDEO, path=path, **kw)


def audio(path="/media/music.mp3", **kw):
    return Resource(kind=ResourceKind.AUDIO, path=path, **kw)


def mock_process(stderr="", stdout="", returncode=0):
    """Popen replacement streaming canned output."""
    process = Mock()
    process.stdout = io.StringIO(stdout)
    process.stderr = io.StringIO(stderr)
    process.returncode = returncode
    process.wait.return_value = returncode
    return process


class TestResource:
    """Test Resource descriptor."""

    def test_camel_case_payload(self):
        """Test that request-style keys populate the model."""
        r = Resource.model_validate(
            {
                "type": "video",
                "path": "/x.mp4",
                "startTime": 2,
                "scaleMode": "crop",
                "transitionDuration": 1,
            }
        )
        assert r.kind == ResourceKind.VIDEO
        assert r.start_time == 2
        assert r.scale_mode == "crop"
        assert r.transition_duration == 1

    def test_defaults(self):
        """Test default attribute values."""
        r = audio()
        assert r.transition == "none"
        assert r.transition_duration == 0.5
        assert r.position == "center"
        assert r.scale_mode == "fit"
        assert r.opacity == 100
        assert r.volume == 100
        assert r.fade_duration == 1

    def test_timeline_duration(self):
        """Test duration used for progress totals."""
        assert image(duration=3).timeline_duration == 3
        assert video().timeline_duration == 5
        assert video(duration=8).timeline_duration == 8


class TestClassify:
    """Test resource validation and classification."""

    def test_partition_keeps_relative_order(self):
        """Test each kind keeps its request order."""
        resources = [video(path="/v1"), image(path="/i1"), audio(path="/a1"), image(path="/i2")]
        partition = classify(resources, check_files=False)

        assert [r.path for r in partition.images] == ["/i1", "/i2"]
        assert [r.path for r in partition.videos] == ["/v1"]
        assert [r.path for r in partition.audios] == ["/a1"]
        assert [r.path for r in partition.ordered()] == ["/i1", "/i2", "/v1", "/a1"]

    def test_missing_file(self, temp_dir):
        """Test that a missing input is reported."""
        missing = os.path.join(temp_dir, "missing.png")
        with pytest.raises(ResourceNotFound) as exc_info:
            classify([image(path=missing)])
        assert exc_info.value.path == missing

    def test_existing_files(self, sample_image_path, sample_audio_path):
        """Test classification with files on disk."""
        partition = classify([image(path=sample_image_path), audio(path=sample_audio_path)])
        assert len(partition.images) == 1
        assert len(partition.audios) == 1

    def test_image_without_duration_rejected(self):
        """Test that images must have a positive duration."""
        with pytest.raises(InvalidResourceParameters):
            classify([image(duration=None)], check_files=False)
        with pytest.raises(InvalidResourceParameters):
            classify([image(duration=0)], check_files=False)

    def test_malformed_numbers_rejected(self):
        """Test out-of-range numeric parameters."""
        for bad in (
            video(duration=-1),
            video(start_time=float("nan")),
            image(opacity=150),
            audio(volume=-10),
            video(transition_duration=-0.5),
        ):
            with pytest.raises(InvalidResourceParameters):
                classify([bad], check_files=False)

    def test_total_duration(self):
        """Test visual timeline length."""
        partition = classify([image(duration=3), image(duration=2), video()], check_files=False)
        assert partition.total_duration == 10


class TestVisualChain:
    """Test per-resource visual filter chains."""

    def test_image_chain(self):
        """Test loop, fit, frame rate and trim for an image."""
        chain = build_visual_chain(image(duration=3), 0, CANVAS)
        assert chain.render() == (
            f"[0:v]loop=-1:size=1:start=0,{FIT_PAD},setsar=1,fps=25:round=up,"
            "trim=duration=3[v0]"
        )

    def test_video_chain(self):
        """Test normalization for a video."""
        chain = build_visual_chain(video(), 1, CANVAS)
        assert chain.render() == f"[1:v]{FIT_PAD},setsar=1,fps=25[v1]"

    def test_fill_and_crop(self):
        """Test cover scaling modes."""
        fill = build_visual_chain(video(scale_mode="fill"), 0, CANVAS).render()
        assert "scale=1280:720:force_original_aspect_ratio=increase,pad=" in fill
        assert "crop=" not in fill

        crop = build_visual_chain(video(scale_mode="crop"), 0, CANVAS).render()
        assert "force_original_aspect_ratio=increase,crop=1280:720,pad=" in crop

    def test_unknown_scale_mode_falls_back_to_fit(self):
        """Test lenient scale mode handling."""
        chain = build_visual_chain(video(scale_mode="stretch"), 0, CANVAS).render()
        assert "force_original_aspect_ratio=decrease" in chain

    def test_position(self):
        """Test anchored padding."""
        chain = build_visual_chain(video(position="bottom-right"), 0, CANVAS).render()
        assert "pad=1280:720:ow-iw:oh-ih:color=0x000000" in chain

    def test_rotation_and_opacity(self):
        """Test rotation in radians and alpha scaling."""
        chain = build_visual_chain(video(rotation=90, opacity=50), 0, CANVAS).render()
        assert "rotate=1.5707963" in chain
        assert "fillcolor=0x000000:ow=1280:oh=720" in chain
        assert "format=yuva420p,colorchannelmixer=aa=0.5" in chain

    def test_fade_transition(self):
        """Test fade in and out around the resource duration."""
        chain = build_visual_chain(image(duration=3, transition="fade"), 0, CANVAS).render()
        assert chain.endswith("fade=t=in:st=0:d=0.5,fade=t=out:st=2.5:d=0.5[v0]")

    def test_fadeout_uses_default_video_length(self):
        """Test video without duration fades out against 5 seconds."""
        chain = build_visual_chain(video(transition="fadeout"), 0, CANVAS).render()
        assert "fade=t=out:st=4.5:d=0.5" in chain
        assert "t=in" not in chain

    def test_slide_transition(self):
        """Test slide window over a double-size canvas."""
        chain = build_visual_chain(video(transition="slideLeft"), 0, CANVAS).render()
        assert "pad=2560:720:1280:0:color=0x000000" in chain
        assert "crop=1280:720:'1280*min(1,t/0.5)':0" in chain
        assert chain.endswith("pad=1280:720:(ow-iw)/2:(oh-ih)/2:color=0x000000[v0]")

    def test_zoom_in_transition(self):
        """Test zoom in grows from half size at a fixed canvas size."""
        chain = build_visual_chain(video(transition="zoomIn"), 0, CANVAS).render()
        assert "pad=2560:1440:(ow-iw)/2:(oh-ih)/2:color=0x000000" in chain
        assert (
            "zoompan='z=2*(0.5+(1-0.5)*min(1,on/25/0.5))':"
            "x=iw/2-(iw/zoom/2):y=ih/2-(ih/zoom/2):d=1:s=1280x720:fps=25"
        ) in chain
        assert chain.endswith("setsar=1[v0]")
        assert "eval=frame" not in chain

    def test_zoom_out_transition(self):
        """Test zoom out needs no enlarged background."""
        chain = build_visual_chain(
            image(transition="zoomOut", transition_duration=1), 0, CANVAS
        ).render()
        assert "zoompan='z=1.5+(1-1.5)*min(1,on/25/1)'" in chain
        assert "pad=2560" not in chain

    def test_unknown_transition_ignored(self):
        """Test unknown transitions add no filters."""
        plain = build_visual_chain(video(), 0, CANVAS).render()
        assert build_visual_chain(video(transition="spin"), 0, CANVAS).render() == plain


class TestAudioChain:
    """Test per-resource audio chains."""

    def test_no_filters(self):
        """Test untouched audio needs no chain."""
        assert build_audio_chain(audio(), 2) is None

    def test_volume(self):
        """Test volume percentage to factor."""
        assert build_audio_chain(audio(volume=50), 2).render() == "[2:a]volume=0.5[a2]"

    def test_fade_both(self):
        """Test fade out falls back to a 10 second length."""
        chain = build_audio_chain(audio(fade="both", fade_duration=1), 3).render()
        assert chain == "[3:a]afade=t=in:st=0:d=1,afade=t=out:st=9:d=1[a3]"

    def test_fade_out_with_duration(self):
        """Test fade out anchored at the declared duration."""
        chain = build_audio_chain(audio(fade="fadeout", fade_duration=2, duration=6), 1)
        assert chain.render() == "[1:a]afade=t=out:st=4:d=2[a1]"


class TestAssemble:
    """Test graph assembly."""

    def test_empty(self):
        """Test empty partition."""
        with pytest.raises(EmptyResourceList):
            assemble(classify([], check_files=False), CANVAS)

    def test_audio_only(self):
        """Test that audio alone cannot form a video."""
        with pytest.raises(NoVisualContent):
            assemble(classify([audio()], check_files=False), CANVAS)

    def test_invalid_canvas(self):
        """Test zero-sized canvas."""
        with pytest.raises(InvalidResourceParameters):
            assemble(
                classify([video()], check_files=False),
                Canvas(width=0, height=720, fps=25),
            )

    def test_single_visual_renamed(self):
        """Test one visual input maps straight to the final pad."""
        assembled = assemble(classify([video()], check_files=False), CANVAS)
        assert assembled.video_pad == "[outv]"
        assert "concat" not in assembled.filter_complex()
        assert assembled.graph.output_pads() == ["outv"]
        assert assembled.audio_pad is None

    def test_concat(self):
        """Test several visuals are concatenated."""
        partition = classify([image(), image(path="/b.png"), video()], check_files=False)
        graph = assemble(partition, CANVAS).filter_complex()
        assert graph.endswith("[v0][v1][v2]concat=n=3:v=1:a=0[outv]")

    def test_raw_single_audio(self):
        """Test a lone unfiltered audio track still goes through one mix."""
        assembled = assemble(classify([image(), audio()], check_files=False), CANVAS)
        assert assembled.filter_complex().endswith(
            "[1:a]amix=inputs=1:duration=longest:dropout_transition=2[outa]"
        )
        assert assembled.graph.operators().count("amix") == 1
        assert assembled.audio_pad == "[outa]"

    def test_single_filtered_audio_mixed(self):
        """Test one filtered audio pad feeds the mix."""
        partition = classify([image(duration=3), audio(volume=50)], check_files=False)
        assembled = assemble(partition, CANVAS)
        assert "[a1]amix=inputs=1:" in assembled.filter_complex()
        assert assembled.graph.operators().count("amix") == 1
        assert assembled.audio_pad == "[outa]"

    def test_amix(self):
        """Test several audio tracks are mixed once."""
        partition = classify(
            [image(), audio(), audio(path="/b.mp3", volume=80)], check_files=False
        )
        assembled = assemble(partition, CANVAS)
        graph = assembled.filter_complex()

        assert "[2:a]volume=0.8[a2]" in graph
        assert graph.endswith(
            "[1:a][a2]amix=inputs=2:duration=longest:dropout_transition=2[outa]"
        )
        assert assembled.graph.operators().count("amix") == 1
        assert assembled.audio_pad == "[outa]"

    def test_pad_labels_unique(self):
        """Test that every output pad is defined once."""
        partition = classify(
            [image(), video(), video(path="/c.mp4"), audio(volume=20), audio(fade="fadein")],
            check_files=False,
        )
        pads = assemble(partition, CANVAS).graph.output_pads()
        assert len(pads) == len(set(pads))


class TestOutputOptions:
    """Test OutputOptions encoding arguments."""

    def test_defaults(self):
        """Test default output settings."""
        options = OutputOptions()
        assert options.size() == (1280, 720)
        assert options.fps == 25
        assert options.video_args() == [
            "-vcodec", "libx264", "-preset", "medium", "-crf", "23",
            "-pix_fmt", "yuv420p", "-shortest",
        ]
        assert options.audio_args() == [
            "-acodec", "aac", "-b:a", "192k", "-ar", "44100", "-ac", "2",
        ]

    def test_camel_case_payload(self):
        """Test request-style option keys."""
        options = OutputOptions.model_validate(
            {"videoCodec": "mpeg4", "videoBitrate": "1M", "backgroundColor": "#FF0000"}
        )
        assert options.video_args() == [
            "-vcodec", "mpeg4", "-b:v", "1M", "-pix_fmt", "yuv420p", "-shortest",
        ]
        assert options.ffmpeg_color == "0xFF0000"

    def test_crf_out_of_range_uses_bitrate(self):
        """Test CRF codecs fall back to bitrate for invalid CRF."""
        args = OutputOptions(video_crf=60).video_args()
        assert args[:6] == ["-vcodec", "libx264", "-preset", "medium", "-b:v", "2000k"]

    def test_h265(self):
        """Test H.265 constructor."""
        args = OutputOptions.h265(crf=28, preset="slow").video_args()
        assert args[:6] == ["-vcodec", "libx265", "-preset", "slow", "-crf", "28"]

    def test_audio_copy(self):
        """Test stream copy for audio."""
        assert OutputOptions(audio_codec="copy").audio_args() == ["-acodec", "copy"]

    def test_resolution(self):
        """Test resolution string overriding width and height."""
        assert OutputOptions(resolution="1920x1080").size() == (1920, 1080)
        assert OutputOptions(resolution="bogus").size() == (1280, 720)
        assert OutputOptions(resolution="640x480").canvas().width == 640


class TestInvocation:
    """Test FFmpeg argument list construction."""

    def test_input_args_seek_before_input(self):
        """Test seek and length precede the input flag."""
        args = input_args(video(path="/v.mp4", start_time=2, duration=4))
        assert args == ["-ss", "2", "-t", "4", "-i", os.path.abspath("/v.mp4")]

    def test_image_input_has_no_trim(self):
        """Test images are trimmed in the graph, not on input."""
        assert input_args(image(path="/a.png")) == ["-i", os.path.abspath("/a.png")]

    def test_two_images_and_audio(self):
        """Test the full slideshow invocation."""
        resources = [
            image(path="/m/img1.jpg", duration=3, transition="fade"),
            image(path="/m/img2.jpg", duration=3, transition="fade"),
            audio(path="/m/music.mp3", volume=50),
        ]
        partition = classify(resources, check_files=False)
        plan = InvocationBuilder(OutputOptions()).build(partition, "/out/result.mp4")

        image_chain = (
            "loop=-1:size=1:start=0,{fit},setsar=1,fps=25:round=up,trim=duration=3,"
            "fade=t=in:st=0:d=0.5,fade=t=out:st=2.5:d=0.5"
        ).format(fit=FIT_PAD)
        expected_graph = (
            f"[0:v]{image_chain}[v0];"
            f"[1:v]{image_chain}[v1];"
            "[2:a]volume=0.5[a2];"
            "[v0][v1]concat=n=2:v=1:a=0[outv];"
            "[a2]amix=inputs=1:duration=longest:dropout_transition=2[outa]"
        )
        assert plan.filter_graph == expected_graph

        assert plan.argv == [
            "-y",
            "-i", os.path.abspath("/m/img1.jpg"),
            "-i", os.path.abspath("/m/img2.jpg"),
            "-i", os.path.abspath("/m/music.mp3"),
            "-filter_complex", expected_graph,
            "-vcodec", "libx264", "-preset", "medium", "-crf", "23",
            "-pix_fmt", "yuv420p", "-shortest",
            "-map", "[outv]",
            "-acodec", "aac", "-b:a", "192k", "-ar", "44100", "-ac", "2",
            "-map", "[outa]",
            os.path.abspath("/out/result.mp4"),
        ]
        assert plan.total_duration == 6
        assert plan.audio_pad == "[outa]"

    def test_single_video_keeps_own_audio(self):
        """Test a lone video maps its optional audio track."""
        partition = classify([video(path="/m/clip.mp4")], check_files=False)
        plan = InvocationBuilder(OutputOptions()).build(partition, "/out/o.mp4")

        assert plan.filter_graph == f"[0:v]{FIT_PAD},setsar=1,fps=25[outv]"
        argv = plan.argv
        assert argv[argv.index("-map") + 1] == "[outv]"
        assert "0:a?" in argv
        assert argv.index("0:a?") < argv.index("-acodec")
        assert argv[-1] == os.path.abspath("/out/o.mp4")

    def test_input_index_follows_images_first(self):
        """Test that interleaved requests are enumerated images first."""
        resources = [video(path="/m/clip.mp4"), image(path="/m/a.png")]
        partition = classify(resources, check_files=False)
        plan = InvocationBuilder(OutputOptions()).build(partition, "/out/o.mp4")

        inputs = [plan.argv[i + 1] for i, a in enumerate(plan.argv) if a == "-i"]
        assert inputs == [os.path.abspath("/m/a.png"), os.path.abspath("/m/clip.mp4")]
        # The video's own audio is selected by its input index
        assert "1:a?" in plan.argv

    def test_deterministic(self):
        """Test identical input yields identical output."""
        resources = [image(), video(transition="zoomOut"), audio(fade="both")]
        builder = InvocationBuilder(OutputOptions())
        first = builder.build(classify(resources, check_files=False), "/o.mp4")
        second = builder.build(classify(resources, check_files=False), "/o.mp4")
        assert first.argv == second.argv

    def test_command_string(self):
        """Test display command rendering."""
        partition = classify([video(path="/m/clip.mp4")], check_files=False)
        plan = InvocationBuilder(OutputOptions(), executable="/usr/bin/ffmpeg").build(
            partition, "/o.mp4"
        )
        assert plan.command().startswith('"/usr/bin/ffmpeg" -y -i ')
        assert plan.full_argv()[0] == "/usr/bin/ffmpeg"


class TestProcessRunner:
    """Test process execution and progress reporting."""

    def test_parse_progress(self):
        """Test elapsed time extraction."""
        assert parse_progress("frame=10 time=00:01:02.50 bitrate=1k") == 62.5
        assert parse_progress("time=00:00:01.00 x time=00:00:02.00") == 2.0
        assert parse_progress("no marker") is None

    def test_progress_percent(self):
        """Test percentage capping and unknown totals."""
        assert progress_percent(3, 6) == 50
        assert progress_percent(9, 6) == 100
        assert progress_percent(3, 0) is None

    def test_success_reports_progress(self, ctx):
        """Test progress callback and captured output."""
        stderr = "frame=1 time=00:00:03.00 speed=1x\nframe=2 time=00:00:06.00 speed=1x\n"
        seen = []

        with patch("subprocess.Popen", return_value=mock_process(stderr=stderr)):
            result = ProcessRunner(ctx).run(
                ["ffmpeg", "-y", "out.mp4"], total_duration=6, on_progress=seen.append
            )

        assert seen == [100.0]
        assert result.stderr == stderr
        assert result.command == '"ffmpeg" -y out.mp4'

    def test_non_zero_exit(self, ctx):
        """Test failure carries exit code and stderr."""
        with patch("subprocess.Popen", return_value=mock_process(stderr="boom", returncode=1)):
            with pytest.raises(EncoderProcessFailure) as exc_info:
                ProcessRunner(ctx).run(["ffmpeg", "-i", "x"])

        assert exc_info.value.exit_code == 1
        assert exc_info.value.stderr == "boom"
        assert "boom" in str(exc_info.value)

    def test_launch_failure(self, ctx):
        """Test missing executable."""
        with patch("subprocess.Popen", side_effect=FileNotFoundError("ffmpeg")):
            with pytest.raises(EncoderLaunchFailure):
                ProcessRunner(ctx).run(["ffmpeg", "-version"])

    def test_timeout_kills_process(self, ctx):
        """Test a process running past its time limit is killed."""
        argv = [sys.executable, "-c", "import time; time.sleep(5)"]
        started = time.monotonic()

        with pytest.raises(EncoderTimeout) as exc_info:
            ProcessRunner(ctx).run(argv, timeout=0.5)

        assert time.monotonic() - started < 4
        assert isinstance(exc_info.value, EncoderProcessFailure)
        assert exc_info.value.exit_code not in (None, 0)
        assert exc_info.value.command.startswith(f'"{sys.executable}" -c ')
        assert exc_info.value.details["exit_code"] == exc_info.value.exit_code
        assert "0.5 seconds" in str(exc_info.value)


class TestMediaContext:
    """Test MediaContext class."""

    def test_resolve_from_env(self):
        """Test FFMPEG_PATH wins."""
        assert resolve_ffmpeg_path({"FFMPEG_PATH": "/opt/ffmpeg"}) == "/opt/ffmpeg"

    def test_resolve_fallback(self):
        """Test bare command name when nothing is found."""
        assert resolve_ffmpeg_path({"PATH": ""}, candidates=()) == "ffmpeg"

    def test_from_env(self, temp_dir):
        """Test environment configuration."""
        ctx = MediaContext.from_env(
            {"FFMPEG_PATH": "/opt/ffmpeg", "MAGICK_PATH": "magick", "FFCOMPOSE_TMP": temp_dir}
        )
        assert ctx.ffmpeg == "/opt/ffmpeg"
        assert ctx.magick == "magick"
        assert ctx.tmp.startswith(temp_dir)
        ctx.cleanup()

    def test_check_ffmpeg_cached(self, ctx):
        """Test version detection runs once unless refreshed."""
        with patch("subprocess.run") as mock_run:
            mock_run.return_value = Mock(
                returncode=0, stdout="ffmpeg version 6.1.1 Copyright (c)", stderr=""
            )
            status = ctx.check_ffmpeg()
            assert status.installed is True
            assert status.version == "6.1.1"

            ctx.check_ffmpeg()
            assert mock_run.call_count == 1

            ctx.check_ffmpeg(refresh=True)
            assert mock_run.call_count == 2

    def test_check_ffmpeg_missing(self, ctx):
        """Test missing FFmpeg."""
        with patch("subprocess.run", side_effect=FileNotFoundError()):
            status = ctx.check_ffmpeg()
        assert status.installed is False
        assert "FFMPEG_PATH" in status.message

    def test_temp_path_and_cleanup(self):
        """Test temporary files live in the context directory."""
        with MediaContext(ffmpeg="ffmpeg") as ctx:
            temp_path = ctx.temp_path(suffix=".png", prefix="test_")
            assert temp_path.endswith(".png")
            assert os.path.dirname(temp_path) == ctx.tmp
        assert not os.path.exists(ctx.tmp)


class TestComposition:
    """Test Composition class."""

    def test_builder(self, ctx):
        """Test fluent resource adding."""
        comp = (
            Composition(ctx=ctx)
            .add_image("/a.png", duration=2)
            .add_video("/b.mp4", start_time=1)
            .add_audio("/c.mp3", volume=30)
        )
        kinds = [r.kind for r in comp.resources]
        assert kinds == [ResourceKind.IMAGE, ResourceKind.VIDEO, ResourceKind.AUDIO]

    def test_empty(self, ctx):
        """Test building without resources."""
        with pytest.raises(EmptyResourceList):
            Composition(ctx=ctx).dry_run()

    def test_dry_run(self, ctx):
        """Test command generation without files on disk."""
        comp = Composition(OutputOptions(width=640, height=360, fps=30), ctx)
        comp.add_image("/a.png", duration=2)
        command = comp.dry_run("out.mp4")

        assert command.startswith('"ffmpeg" -y -i ')
        assert "pad=640:360" in command
        assert "fps=30:round=up" in command
        assert command.endswith(os.path.abspath("out.mp4"))

    def test_build_checks_files(self, ctx, temp_dir):
        """Test missing inputs are reported before running."""
        comp = Composition(ctx=ctx).add_image(os.path.join(temp_dir, "nope.png"), duration=2)
        with pytest.raises(ResourceNotFound):
            comp.build(os.path.join(temp_dir, "out.mp4"))

    def test_to_file(self, ctx, temp_dir, sample_image_path, sample_audio_path):
        """Test rendering runs FFmpeg once with the planned arguments."""
        out_path = os.path.join(temp_dir, "renders", "out.mp4")
        comp = Composition(ctx=ctx)
        comp.add_image(sample_image_path, duration=4).add_audio(sample_audio_path)

        with patch("subprocess.Popen", return_value=mock_process()) as mock_popen:
            result = comp.to_file(out_path)

        argv = mock_popen.call_args[0][0]
        assert argv[0] == "ffmpeg"
        assert argv[-1] == os.path.abspath(out_path)
        assert argv[-2] == "[outa]"
        assert result.output_path == os.path.abspath(out_path)
        assert os.path.isdir(os.path.dirname(out_path))
