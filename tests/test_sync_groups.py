"""Tests: sync group resolver and the platform catalog."""

import pytest

from tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from tracker.services import sync_groups as sg
from tracker.services.platform_catalog import PlatformCatalog, get_catalog


class TestResolver:
    @pytest.mark.parametrize("category", sg.CATEGORIES)
    def test_total(self, category):
        assert category in sg.resolve_sync_group(category)

    def test_unknown_category_resolves_to_itself(self):
        assert sg.resolve_sync_group("webnovel") == frozenset({"webnovel"})
        assert sg.siblings("webnovel") == frozenset()

    @pytest.mark.parametrize("a", sg.CATEGORIES)
    @pytest.mark.parametrize("b", sg.CATEGORIES)
    def test_symmetric(self, a, b):
        if b in sg.resolve_sync_group(a):
            assert a in sg.resolve_sync_group(b)

    def test_groups(self):
        assert sg.siblings(sg.DOMESTIC_LIVE) == {sg.OVERSEAS_LIVE}
        assert sg.siblings(sg.OVERSEAS_COMPLETED) == {sg.DOMESTIC_COMPLETED}

    def test_labels_normalize(self):
        assert sg.normalize_category("국내비독점 [라이브]") == sg.DOMESTIC_LIVE
        assert sg.resolve_sync_group("해외비독점 [완결]") == sg.resolve_sync_group(sg.DOMESTIC_COMPLETED)

    def test_region_and_lifecycle(self):
        assert sg.region_of(sg.OVERSEAS_LIVE) == sg.OVERSEAS
        assert sg.lifecycle_of(sg.DOMESTIC_COMPLETED) == sg.COMPLETED
        assert sg.counterpart_lifecycle(sg.DOMESTIC_LIVE) == sg.DOMESTIC_COMPLETED
        assert sg.counterpart_lifecycle("webnovel") is None
        assert sg.categories_for_lifecycle(sg.LIVE) == (sg.DOMESTIC_LIVE, sg.OVERSEAS_LIVE)
        with pytest.raises(ValueError):
            sg.category_for("moon", sg.LIVE)


class TestCatalog:
    def test_region_lists(self):
        catalog = PlatformCatalog()
        assert "toomics" in catalog.ids_for_category(sg.DOMESTIC_LIVE)
        assert "toomics" not in catalog.ids_for_category(sg.OVERSEAS_LIVE)
        assert "toomics-japan" in catalog.ids_for_category(sg.OVERSEAS_COMPLETED)

    def test_lookup_by_name(self):
        catalog = PlatformCatalog()
        assert catalog.id_for_name("투믹스") == "toomics"
        assert catalog.display_name("toomics") == "투믹스"
        assert catalog.display_name("gone") == "gone"

    def test_extra_platforms_setting(self):
        catalog = PlatformCatalog(["overseas:webtoon-en:Webtoon EN", "broken"])
        assert catalog.get("webtoon-en").region == sg.OVERSEAS
        assert catalog.get("broken") is None

    def test_edit(self):
        catalog = PlatformCatalog()
        catalog.add_platform(sg.DOMESTIC, "kakao", "카카오")
        with pytest.raises(ConflictError):
            catalog.add_platform(sg.DOMESTIC, "kakao", "카카오")
        with pytest.raises(ValidationError):
            catalog.add_platform("moon", "x", "x")
        assert catalog.rename_platform("kakao", "카카오페이지").name == "카카오페이지"
        catalog.remove_platform("kakao")
        assert not catalog.is_configured("kakao")
        with pytest.raises(NotFoundError):
            catalog.remove_platform("kakao")

    def test_app_catalog_is_cached(self, app):
        assert get_catalog() is get_catalog()
