"""路径工具与重名命名规则的单元测试。"""

import pytest

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.exceptions import ValidationException
from app.packages.drive.services.name_resolver import name_resolver, validate_name
from app.packages.drive.utils.path_utils import (
    build_path,
    join_path,
    replace_prefix,
    sanitize_segment,
    split_extension,
)


def test_sanitize_segment_lowercases_and_collapses_whitespace():
    assert sanitize_segment("My  Project Files") == "my-project-files"
    assert sanitize_segment("  Trim me ") == "trim-me"
    assert sanitize_segment('we*ird:na"me') == "weirdname"


def test_join_and_build_path_agree():
    segments = [{"id": 1, "name": "Docs"}, {"id": 2, "name": "Work Items"}]
    assert join_path("/docs/work-items", "Report 1") == "/docs/work-items/report-1"
    assert build_path(segments, "Report 1") == "/docs/work-items/report-1"
    assert join_path(None, "Top") == "/top"


def test_replace_prefix_only_matches_whole_segments():
    assert replace_prefix("/docs/work", "/docs", "/documents") == "/documents/work"
    assert replace_prefix("/docs", "/docs", "/documents") == "/documents"
    assert replace_prefix("/docs2/work", "/docs", "/documents") is None


def test_split_extension():
    assert split_extension("photo.JPG") == "jpg"
    assert split_extension("archive.tar.gz") == "gz"
    assert split_extension(".env") == ""
    assert split_extension("README") == ""


@pytest.mark.parametrize("name", ["", "   ", ".", "..", "a/b", "semi;colon", "x" * 256])
def test_validate_name_rejects_invalid_names(name):
    with pytest.raises(ValidationException):
        validate_name(name)


def test_validate_name_accepts_disambiguated_names():
    assert validate_name("Report (2)") == "Report (2)"
    assert validate_name("my_file-v1.0.txt") == "my_file-v1.0.txt"


def test_format_duplicate_truncates_base_name():
    assert name_resolver.format_duplicate("Report", 2) == "Report (2)"
    long_name = "a" * get_settings().max_name_length
    candidate = name_resolver.format_duplicate(long_name, 12)
    assert len(candidate) == get_settings().max_name_length
    assert candidate.endswith(" (12)")
