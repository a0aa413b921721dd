"""
Unit tests for ArtworkUrlBuilder.
"""

from datetime import datetime, timezone

import pytest

from pet_economy.modules.evolution.artwork import ArtworkUrlBuilder, cache_buster
from pet_economy.modules.shared.exceptions import ValidationError


@pytest.fixture
def builder() -> ArtworkUrlBuilder:
    return ArtworkUrlBuilder(base_url="https://cdn.test/storage/v1/", bucket="pets")


@pytest.mark.unit
class TestArtworkUrlBuilder:

    def test_full_variant_is_public_object_url(self, builder):
        assert builder.build("rare/owl-1.png") == (
            "https://cdn.test/storage/v1/object/public/pets/rare/owl-1.png"
        )

    def test_leading_slash_is_ignored(self, builder):
        assert builder.build("/rare/owl-1.png").endswith("/object/public/pets/rare/owl-1.png")

    def test_optimized_variant(self, builder):
        assert builder.build("rare/owl-1.png", "optimized") == (
            "https://cdn.test/storage/v1/render/image/public/pets/rare/owl-1.png"
            "?width=400&quality=80&resize=contain"
        )

    def test_absolute_url_passes_through_with_version(self, builder):
        updated = datetime(2024, 1, 1, tzinfo=timezone.utc)

        url = builder.build("https://elsewhere.test/owl.png?size=big", "thumbnail", updated)

        assert url == f"https://elsewhere.test/owl.png?size=big&v={cache_buster(updated)}"

    def test_data_uri_is_untouched(self, builder):
        updated = datetime(2024, 1, 1, tzinfo=timezone.utc)

        assert builder.build("data:image/png;base64,AAAA", "full", updated) == (
            "data:image/png;base64,AAAA"
        )

    def test_empty_path(self, builder):
        assert builder.build("") == ""
        assert builder.build(None, "thumbnail") == ""

    def test_unknown_variant(self, builder):
        with pytest.raises(ValidationError):
            builder.build("rare/owl-1.png", "huge")


@pytest.mark.unit
class TestCacheBuster:

    def test_epoch_milliseconds(self):
        assert cache_buster(datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)) == 1000

    def test_naive_datetime_read_as_utc(self):
        naive = datetime(2024, 5, 1, 8, 30)
        aware = naive.replace(tzinfo=timezone.utc)

        assert cache_buster(naive) == cache_buster(aware)

    def test_none(self):
        assert cache_buster(None) is None
