"""
Codec and Wire Model Tests
==========================

Tests for request encoding and inbound message classification.
"""

import json

import msgpack
import pytest
from pydantic import ValidationError

from lightning_realtime.errors import MalformedFrameError
from lightning_realtime.models.request import MAX_SEED, ImageSize, RequestFrame
from lightning_realtime.models.result import ResultFrame
from lightning_realtime.stream.codec import (
    ControlMessage,
    decode_message,
    encode_request,
    parse_message,
)


class TestRequestFrame:
    """Tests for the outbound frame schema."""

    def test_wire_fields(self):
        """Wire dict carries every outbound field, steps as text."""
        frame = RequestFrame(prompt="P", seed=123, num_inference_steps=4)
        wire = frame.to_wire()

        assert wire == {
            "prompt": "P",
            "seed": 123,
            "num_inference_steps": "4",
            "image_size": "square_hd",
            "enable_safety_checker": True,
            "sync_mode": True,
            "num_images": 1,
            "_force_msgpack": b"",
        }
        assert frame.steps == 4

    def test_enum_image_size_is_plain_text(self):
        frame = RequestFrame(
            prompt="P", seed=1, num_inference_steps="2", image_size=ImageSize.LANDSCAPE_16_9
        )
        assert frame.to_wire()["image_size"] == "landscape_16_9"

    @pytest.mark.parametrize("steps", [0, "zero", -2])
    def test_invalid_steps(self, steps):
        with pytest.raises(ValidationError):
            RequestFrame(prompt="P", seed=1, num_inference_steps=steps)

    def test_negative_seed_rejected(self):
        with pytest.raises(ValidationError):
            RequestFrame(prompt="P", seed=-1, num_inference_steps=2)

    def test_seed_must_fit_int64(self):
        assert RequestFrame(prompt="P", seed=MAX_SEED, num_inference_steps=2).seed == MAX_SEED
        with pytest.raises(ValidationError):
            RequestFrame(prompt="P", seed=MAX_SEED + 1, num_inference_steps=2)


class TestEncode:
    """Tests for encode_request."""

    def test_msgpack_with_binary_field(self):
        """Encoded frames are msgpack maps with a real (empty) binary field."""
        frame = RequestFrame(prompt="P", seed=123, num_inference_steps=2)
        decoded = msgpack.unpackb(encode_request(frame), raw=False)

        assert decoded["_force_msgpack"] == b""
        assert isinstance(decoded["_force_msgpack"], bytes)
        assert decoded["seed"] == 123


class TestParseMessage:
    """Tests for inbound message parsing."""

    def test_binary_result(self, jpeg_bytes):
        raw = msgpack.packb(
            {"images": [{"content": jpeg_bytes}], "timings": {"inference": 0.12}, "seed": 9},
            use_bin_type=True,
        )
        parsed = parse_message(raw)

        assert isinstance(parsed, ResultFrame)
        assert parsed.images[0].content == jpeg_bytes
        assert parsed.inference_time == pytest.approx(0.12)
        assert parsed.seed == 9

    def test_text_result(self):
        raw = json.dumps(
            {"images": [{"url": "data:image/jpeg;base64,AAAA"}], "timings": {"inference": 0.3}}
        )
        parsed = parse_message(raw)

        assert isinstance(parsed, ResultFrame)
        assert parsed.images[0].url.startswith("data:")

    def test_empty_images_is_still_a_frame(self):
        """Empty image lists are rejected later, by the receiver."""
        raw = msgpack.packb({"images": [], "timings": {"inference": 0.1}})
        assert isinstance(parse_message(raw), ResultFrame)

    def test_error_control_message(self):
        raw = json.dumps({"type": "x-fal-error", "error": "Internal", "reason": "boom"})
        parsed = parse_message(raw)

        assert isinstance(parsed, ControlMessage)
        assert parsed.is_error
        assert parsed.reason == "boom"

    def test_other_control_message(self):
        parsed = parse_message(json.dumps({"type": "x-fal-message", "message": "hi"}))
        assert isinstance(parsed, ControlMessage)
        assert not parsed.is_error

    @pytest.mark.parametrize(
        "payload",
        [
            {"images": []},
            {"timings": {"inference": 0.1}},
            {"images": [], "timings": {}},
            {"images": "nope", "timings": {"inference": 0.1}},
        ],
    )
    def test_missing_fields(self, payload):
        with pytest.raises(MalformedFrameError):
            parse_message(msgpack.packb(payload))

    @pytest.mark.parametrize("raw", [b"\xc1", "not json", "[1, 2]", b"\x93\x01\x02\x03"])
    def test_undecodable(self, raw):
        with pytest.raises(MalformedFrameError):
            decode_message(raw)
