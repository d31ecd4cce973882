"""
Tests for the loguru setup.
"""

import io
import json

from loguru import logger

from buildrelay.logging_config import setup_logging


def test_text_records_use_level_threshold():
    stream = io.StringIO()
    setup_logging(level="warning", sink=stream)

    logger.info("not shown")
    logger.warning("Upload failed")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    assert "WARNING" in lines[0]
    assert lines[0].endswith("Upload failed")


def test_json_records_are_serialized():
    stream = io.StringIO()
    setup_logging(json_format=True, sink=stream)

    logger.info("Download s3://bucket/in.zip")

    record = json.loads(stream.getvalue().splitlines()[0])["record"]
    assert record["message"] == "Download s3://bucket/in.zip"
    assert record["level"]["name"] == "INFO"
