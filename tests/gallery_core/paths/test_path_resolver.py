"""
Tests for media classification and destination path resolution.
"""

import os
from datetime import UTC, datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from gallery_core.paths import (
    UNKNOWN_USER,
    build_filename,
    classify_media,
    resolve_path,
    sanitize_name,
)
from gallery_core.types import MediaKind

HASH = "0123456789abcdef0123456789abcdef"


def _item(url, user="Alice", created=None):
    return SimpleNamespace(url=url, user=user, created=created)


class TestSanitizeName:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Family", "Family"),
            ("  Road Trip  ", "Road Trip"),
            ('a<b>c:d"e/f\\g|h?i*j&k', "a_b_c_d_e_f_g_h_i_j_k"),
            ("", ""),
            (None, ""),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_name(raw) == expected


class TestClassifyMedia:
    def test_image_host_uses_trailing_hash(self):
        media = classify_media(f"https://i.groupme.com/1024x768.png.{HASH}")
        assert media.kind is MediaKind.IMAGE
        assert media.hash == HASH
        assert media.extension == ".png"

    def test_image_without_extension_defaults_to_jpg(self):
        media = classify_media(f"https://i.groupme.com/{HASH}")
        assert media.extension == ".jpg"

    def test_short_image_url_has_unknown_hash(self):
        assert classify_media("https://i.groupme.com/abc").hash == "unknown"

    def test_other_hosts_are_video(self):
        media = classify_media("https://v.groupme.com/12345/2019-06-01T00:00:00Z/clip99.1280x720r90.mov")
        assert media.kind is MediaKind.VIDEO
        assert media.hash == "clip99"
        assert media.extension == ".mov"

    def test_video_without_extension_defaults_to_mp4(self):
        media = classify_media("https://v.groupme.com/12345/clip99")
        assert media.hash == "clip99"
        assert media.extension == ".mp4"


class TestBuildFilename:
    def test_user_and_hash(self):
        name = build_filename(_item(f"https://i.groupme.com/1024x768.jpeg.{HASH}", user="Bob Smith"))
        assert name == f"Bob_Smith-{HASH}.jpeg"

    def test_missing_user_uses_placeholder(self):
        name = build_filename(_item(f"https://i.groupme.com/1024x768.jpeg.{HASH}", user=""))
        assert name.startswith(f"{UNKNOWN_USER}-")

    def test_unsafe_user_characters_are_replaced(self):
        name = build_filename(_item(f"https://i.groupme.com/{HASH}", user="A/B"))
        assert name == f"A_B-{HASH}.jpg"


class TestResolvePath:
    def test_flat_layout(self, tmp_path):
        item = _item(f"https://i.groupme.com/1024x768.jpeg.{HASH}")
        path = resolve_path(tmp_path, "Family: 2019", item)
        assert path == tmp_path / "Family_ 2019" / f"Alice-{HASH}.jpeg"

    def test_is_absolute_for_relative_base(self):
        item = _item(f"https://i.groupme.com/1024x768.jpeg.{HASH}")
        path = resolve_path("downloads", "Family", item)
        assert path.is_absolute()
        assert path == Path(os.path.abspath("downloads")) / "Family" / f"Alice-{HASH}.jpeg"

    def test_deterministic(self, tmp_path):
        item = _item(f"https://i.groupme.com/1024x768.jpeg.{HASH}")
        assert resolve_path(tmp_path, "G", item) == resolve_path(tmp_path, "G", item)

    def test_distinct_urls_give_distinct_paths(self, tmp_path):
        a = _item(f"https://i.groupme.com/1024x768.jpeg.{'a' * 32}")
        b = _item(f"https://i.groupme.com/1024x768.jpeg.{'b' * 32}")
        assert resolve_path(tmp_path, "G", a) != resolve_path(tmp_path, "G", b)

    def test_date_layout(self, tmp_path):
        created = datetime(2019, 7, 4, 12, 0, tzinfo=UTC)
        item = _item(f"https://i.groupme.com/{HASH}", created=created)
        path = resolve_path(tmp_path, "G", item, organize="date")
        assert path == tmp_path / "G" / "2019" / "07-July" / f"Alice-{HASH}.jpg"

    def test_date_layout_without_timestamp(self, tmp_path):
        item = _item(f"https://i.groupme.com/{HASH}")
        path = resolve_path(tmp_path, "G", item, organize="date")
        assert path.parent == tmp_path / "G" / "undated"

    def test_user_layout(self, tmp_path):
        item = _item(f"https://i.groupme.com/{HASH}", user="Bob Smith")
        path = resolve_path(tmp_path, "G", item, organize="user")
        assert path == tmp_path / "G" / "Bob_Smith" / f"Bob_Smith-{HASH}.jpg"

    def test_blank_group_name(self, tmp_path):
        item = _item(f"https://i.groupme.com/{HASH}")
        assert resolve_path(tmp_path, "  ", item).parent.name == "unnamed-group"

    def test_unknown_mode_raises(self, tmp_path):
        with pytest.raises(ValueError, match="organize"):
            resolve_path(tmp_path, "G", _item(f"https://i.groupme.com/{HASH}"), organize="size")

    def test_no_filesystem_access(self, tmp_path):
        resolve_path(tmp_path / "missing", "G", _item(f"https://i.groupme.com/{HASH}"))
        assert not (tmp_path / "missing").exists()


class TestPathContainment:
    @pytest.mark.parametrize(
        "url",
        [
            "https://i.groupme.com/x/../../../../../../../../etc/cron.d/pwned",
            "https://i.groupme.com/1024x768.png",
            "https://i.groupme.com/a/" + "b" * 20 + "/" + "c" * 20,
            "https://i.groupme.com/" + "..\\" * 12,
            "https://v.groupme.com/1/..",
            "https://v.groupme.com/1/a\\..\\..\\evil.mp4",
        ],
    )
    def test_file_always_lands_in_group_folder(self, tmp_path, url):
        for organize in ("flat", "date"):
            path = resolve_path(tmp_path, "Trip", _item(url, user="Bob"), organize=organize)
            assert tmp_path / "Trip" in path.parents
            assert ".." not in path.relative_to(tmp_path).parts
        assert resolve_path(tmp_path, "Trip", _item(url, user="Bob")).parent == tmp_path / "Trip"

    def test_hash_never_spans_path_separators(self):
        media = classify_media("https://i.groupme.com/x/../../../../../../../../etc/cron.d/pwned")
        assert media.hash == "unknown"
        assert "/" not in media.hash

    def test_short_image_url_keeps_single_extension(self, tmp_path):
        path = resolve_path(tmp_path, "Trip", _item("https://i.groupme.com/1024x768.png", user="Bob"))
        assert path == tmp_path / "Trip" / "Bob-unknown.png"

    @pytest.mark.parametrize("name", ["..", ".", " .. "])
    def test_dot_names_cannot_climb(self, tmp_path, name):
        item = _item(f"https://i.groupme.com/{HASH}", user=name)
        path = resolve_path(tmp_path, name, item, organize="user")
        assert path == tmp_path / "unnamed-group" / UNKNOWN_USER / f"{UNKNOWN_USER}-{HASH}.jpg"
