"""Tests for utility helpers."""

import asyncio
import re

from anki_wordqueue.utils import (
    decode_data_url,
    download_image_as_base64,
    generate_media_filename,
    load_words_from_file,
    split_words,
)


def test_split_words_trims_and_drops_blank_lines():
    assert split_words(" lucid \r\n\n\topaque\n   \n") == ["lucid", "opaque"]


def test_load_words_from_file_skips_comments(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("# week 1\nlucid\n\nopaque\n", encoding="utf-8")

    assert load_words_from_file(path) == ["lucid", "opaque"]


def test_decode_data_url():
    image = decode_data_url("data:image/jpeg;base64,aGVsbG8=")
    assert image.base64 == "aGVsbG8="
    assert image.mime_type == "image/jpeg"


def test_invalid_data_url_downloads_nothing():
    assert asyncio.run(download_image_as_base64("data:image/png,notbase64")) is None


def test_media_filenames_are_unique_and_safe():
    names = {generate_media_filename("Sui Generis!", "image/png") for _ in range(50)}

    assert len(names) == 50
    for name in names:
        assert re.fullmatch(r"gre_sui_generis__[0-9a-f]{32}\.png", name)
    assert generate_media_filename("lucid", "image/jpeg", prefix="vocab").startswith("vocab_lucid_")
    assert generate_media_filename("lucid", "image/jpeg").endswith(".jpg")
