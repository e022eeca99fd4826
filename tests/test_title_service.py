"""
Tests: title entries and sync-group mirrors.

Covers:
    1. add_title creates every sync-group sibling with one group id
    2. Conflicts, adoption of ungrouped siblings, validation
    3. Rename propagation to the sibling that still carries the old title
    4. Delete removes mirrors and their status rows
    5. ensure_mirrors / backfill_title_groups for rows without group ids
    6. Delivery day and entry updates
"""

import pytest

from tracker.core.exceptions import ConflictError, NotFoundError, ValidationError
from tracker.models import db
from tracker.models.distribution import DeliveryRecord, DistributionStatus, TitleEntry
from tracker.services import delivery_service as dsv
from tracker.services import distribution_service as ds
from tracker.services import sync_groups as sg
from tracker.services import title_service as ts


def _ungrouped(title, category, **kwargs):
    entry = TitleEntry(title=title, category=category, status=sg.lifecycle_of(category),
                       platforms={}, **kwargs)
    db.session.add(entry)
    db.session.commit()
    return entry


class TestAddTitle:
    def test_creates_group(self):
        entries = ts.add_title("T1", sg.DOMESTIC_LIVE, delivery_day="Friday", total_episodes=30)
        assert [e.category for e in entries] == [sg.DOMESTIC_LIVE, sg.OVERSEAS_LIVE]
        assert len({e.title_group_id for e in entries}) == 1
        assert {e.delivery_day for e in entries} == {"friday"}
        assert {e.total_episodes for e in entries} == {30}
        assert {e.status for e in entries} == {sg.LIVE}

    def test_completed_category(self):
        entries = ts.add_title("완결작", sg.OVERSEAS_COMPLETED)
        assert {e.category for e in entries} == {sg.OVERSEAS_COMPLETED, sg.DOMESTIC_COMPLETED}
        assert {e.status for e in entries} == {sg.COMPLETED}

    def test_label_category_accepted(self):
        entries = ts.add_title("라벨", sg.CATEGORY_LABELS[sg.DOMESTIC_LIVE])
        assert entries[0].category == sg.DOMESTIC_LIVE

    def test_duplicate_in_category(self):
        ts.add_title("T1", sg.DOMESTIC_LIVE)
        with pytest.raises(ConflictError):
            ts.add_title("T1", sg.DOMESTIC_LIVE)

    def test_adopts_ungrouped_sibling(self):
        legacy = _ungrouped("T1", sg.OVERSEAS_LIVE)
        entries = ts.add_title("T1", sg.DOMESTIC_LIVE)
        assert TitleEntry.query.filter_by(title="T1").count() == 2
        assert entries[1].id == legacy.id
        assert legacy.title_group_id == entries[0].title_group_id

    @pytest.mark.parametrize("title,category,day", [
        ("", sg.DOMESTIC_LIVE, None),
        ("T", "webnovel", None),
        ("T", sg.DOMESTIC_LIVE, "someday"),
    ])
    def test_invalid(self, title, category, day):
        with pytest.raises(ValidationError):
            ts.add_title(title, category, delivery_day=day)
        assert TitleEntry.query.count() == 0


class TestGroupMembers:
    def test_group_id(self):
        entries = ts.add_title("T1", sg.DOMESTIC_LIVE)
        members = ts.group_members(entries[0])
        assert {m.id for m in members} == {e.id for e in entries}

    def test_ungrouped_joined_by_title(self):
        a = _ungrouped("T1", sg.DOMESTIC_LIVE)
        b = _ungrouped("T1", sg.OVERSEAS_LIVE)
        _ungrouped("T1", sg.DOMESTIC_COMPLETED)
        assert {m.id for m in ts.group_members(a)} == {a.id, b.id}


class TestRename:
    def test_rename_follows_to_sibling(self):
        domestic, overseas = ts.add_title("T1", sg.DOMESTIC_LIVE)
        ts.rename_title(domestic.id, "T2")
        assert ts.get_entry(overseas.id).title == "T2"
        assert ts.find_entry("T1", sg.OVERSEAS_LIVE) is None

    def test_renamed_sibling_left_alone(self):
        domestic, overseas = ts.add_title("T1", sg.DOMESTIC_LIVE)
        overseas.title = "T1 (EN)"
        db.session.commit()
        ts.rename_title(domestic.id, "T2")
        assert ts.get_entry(overseas.id).title == "T1 (EN)"

    def test_rename_moves_delivery_records(self):
        domestic, _ = ts.add_title("T1", sg.DOMESTIC_LIVE)
        dsv.set_delivered("T1", "toomics", 1, True)
        dsv.set_common_schedule("T1", 1, "open", "2026-01-05")
        ts.rename_title(domestic.id, "T2")
        assert DeliveryRecord.query.filter_by(title="T2").one().count == 1
        assert dsv.build_delivery_view()[0]["common_schedule"]["open"] == {"1": "2026-01-05"}

    def test_rename_rekeys_title_keyed_statuses(self):
        domestic, overseas = ts.add_title("T1", sg.DOMESTIC_LIVE)
        for key, platform_id, category in [
            ("T1::domestic-live::bomtoon", "bomtoon", None),
            (f"T1|{domestic.id}|mrblue", "mrblue", sg.DOMESTIC_LIVE),
            ("T1::overseas-live::manta", "manta", None),
        ]:
            db.session.add(DistributionStatus(key=key, platform_id=platform_id, status="launched",
                                              title="T1", category=category, note=""))
        db.session.commit()
        assert ds.reconciled_statuses(domestic) == {"bomtoon": "launched", "mrblue": "launched"}

        ts.rename_title(domestic.id, "T2")
        assert ds.reconciled_statuses(ts.get_entry(domestic.id)) == {
            "bomtoon": "launched", "mrblue": "launched",
        }
        assert ds.reconciled_statuses(ts.get_entry(overseas.id)) == {"manta": "launched"}
        keys = {r.key for r in DistributionStatus.query.all()}
        assert keys == {"T2::domestic-live::bomtoon", f"T2|{domestic.id}|mrblue",
                        "T2::overseas-live::manta"}
        assert {r.title for r in DistributionStatus.query.all()} == {"T2"}

    def test_rename_clash(self):
        domestic, _ = ts.add_title("T1", sg.DOMESTIC_LIVE)
        ts.add_title("T2", sg.OVERSEAS_LIVE)
        with pytest.raises(ConflictError):
            ts.rename_title(domestic.id, "T2")
        assert ts.get_entry(domestic.id).title == "T1"

    def test_blank_name(self):
        domestic, _ = ts.add_title("T1", sg.DOMESTIC_LIVE)
        with pytest.raises(ValidationError):
            ts.rename_title(domestic.id, "  ")


class TestDelete:
    def test_delete_removes_mirrors_and_statuses(self):
        domestic, overseas = ts.add_title("T1", sg.DOMESTIC_LIVE)
        ds.set_status(domestic.id, "toomics", "launched")
        ds.set_status(overseas.id, "manta", "pending")
        assert ts.delete_title(domestic.id) == 2
        assert TitleEntry.query.count() == 0
        assert DistributionStatus.query.count() == 0

    def test_delete_unknown(self):
        with pytest.raises(NotFoundError):
            ts.delete_title("missing")


class TestMirrors:
    def test_ensure_mirrors_fills_gaps_once(self):
        lone = _ungrouped("T1", sg.OVERSEAS_LIVE, delivery_day="monday", total_episodes=12)
        created = ts.ensure_mirrors(sg.DOMESTIC_LIVE)
        assert [m.category for m in created] == [sg.DOMESTIC_LIVE]
        mirror = created[0]
        assert mirror.title_group_id == lone.title_group_id
        assert (mirror.delivery_day, mirror.total_episodes) == ("monday", 12)
        assert ts.ensure_mirrors(sg.DOMESTIC_LIVE) == []

    def test_backfill(self):
        a = _ungrouped("T1", sg.DOMESTIC_LIVE)
        b = _ungrouped("T1", sg.OVERSEAS_LIVE)
        c = _ungrouped("T1", sg.DOMESTIC_COMPLETED)
        grouped = ts.add_title("T3", sg.DOMESTIC_LIVE)
        result = ts.backfill_title_groups()
        assert result == {"entries_assigned": 3, "groups_created": 2}
        assert a.title_group_id == b.title_group_id
        assert c.title_group_id not in (None, a.title_group_id)
        assert ts.backfill_title_groups() == {"entries_assigned": 0, "groups_created": 0}
        assert grouped[0].title_group_id == grouped[1].title_group_id


class TestDeliveryDayAndUpdate:
    def test_set_delivery_day_on_every_entry(self):
        ts.add_title("T1", sg.DOMESTIC_LIVE)
        ts.set_delivery_day("T1", "every day")
        assert {e.delivery_day for e in TitleEntry.query.all()} == {"every day"}
        ts.set_delivery_day("T1", None)
        assert {e.delivery_day for e in TitleEntry.query.all()} == {None}

    def test_set_delivery_day_unknown_title(self):
        with pytest.raises(NotFoundError):
            ts.set_delivery_day("없는작품", "monday")

    def test_update_total_episodes_on_mirrors(self):
        domestic, overseas = ts.add_title("T1", sg.DOMESTIC_LIVE)
        ts.update_entry(domestic.id, {"total_episodes": "40"})
        assert ts.get_entry(overseas.id).total_episodes == 40

    def test_project_link_moves_owner_keyed_rows(self, project):
        domestic, overseas = ts.add_title("T1", sg.DOMESTIC_LIVE)
        ds.set_status(domestic.id, "toomics", "pending")
        ds.set_note(domestic.id, "toomics", "검수중")
        ds.set_status(overseas.id, "manta", "pending")

        ts.update_entry(domestic.id, {"project_id": project.id})
        assert {r.key for r in DistributionStatus.query.filter_by(project_id=project.id)} == {
            f"{project.id}::domestic-live::toomics", f"{project.id}::overseas-live::manta",
        }
        assert ds.notes_for_entry(ts.get_entry(domestic.id)) == {"toomics": "검수중"}

        ts.update_entry(domestic.id, {"project_id": None})
        assert DistributionStatus.query.filter_by(
            key=f"{domestic.id}::domestic-live::toomics").one().note == "검수중"

    def test_project_link_merges_into_taken_key(self, project):
        linked = ts.find_entry("감금연휴", sg.DOMESTIC_LIVE)
        ds.set_status(linked.id, "toomics", "pending")
        lone = _ungrouped("T1", sg.DOMESTIC_LIVE)
        ds.set_status(lone.id, "toomics", "launched")
        ts.update_entry(lone.id, {"project_id": project.id})
        row = DistributionStatus.query.filter_by(key=f"{project.id}::domestic-live::toomics").one()
        assert row.status == "launched"
        assert DistributionStatus.query.count() == 1

    @pytest.mark.parametrize("value", ["many", -1])
    def test_update_total_episodes_invalid(self, value):
        domestic, _ = ts.add_title("T1", sg.DOMESTIC_LIVE)
        with pytest.raises(ValidationError):
            ts.update_entry(domestic.id, {"total_episodes": value})
