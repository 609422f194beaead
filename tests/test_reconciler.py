"""Tests for vaultkeeper.importer.reconciler — rows to services."""

import logging

import pytest

from vaultkeeper.catalog.models import FieldType, Service, ServiceField, ServiceType
from vaultkeeper.errors import BackendError, ValidationError
from vaultkeeper.importer.reconciler import (
    ColumnMapping,
    ImportSession,
    ImportSettings,
    ImportState,
    LabelStrategy,
    MappingKind,
    SkipReason,
    next_label_number,
    reconcile,
)

EMAIL_REF = ColumnMapping.parse("field:account:email_ref@address")


def _settings(**overrides) -> ImportSettings:
    values = {
        "primary_type_id": "account",
        "label_column": 0,
        "columns": {1: EMAIL_REF},
    }
    values.update(overrides)
    return ImportSettings(**values)


class TestColumnMapping:
    def test_ignore(self):
        assert ColumnMapping.parse("ignore").kind == MappingKind.IGNORE
        assert ColumnMapping.parse("").kind == MappingKind.IGNORE

    def test_tags(self):
        assert ColumnMapping.parse("tags").kind == MappingKind.TAGS

    def test_field(self):
        m = ColumnMapping.parse("field:account:login")
        assert (m.kind, m.service_type_id, m.field_key, m.lookup_key) == (
            MappingKind.FIELD,
            "account",
            "login",
            None,
        )

    def test_field_with_lookup(self):
        assert EMAIL_REF.field_key == "email_ref"
        assert EMAIL_REF.lookup_key == "address"

    @pytest.mark.parametrize("text", ["field", "field:account", "field::x", "label", "field:a:@x"])
    def test_invalid(self, text):
        with pytest.raises(ValidationError):
            ColumnMapping.parse(text)

    @pytest.mark.parametrize("text", ["ignore", "tags", "field:a:b", "field:a:b@c"])
    def test_str(self, text):
        assert str(ColumnMapping.parse(text)) == text


class TestSettingsValidation:
    def test_no_primary_type(self, vault):
        with pytest.raises(ValidationError):
            reconcile([["x"]], _settings(primary_type_id=""), vault)

    def test_unknown_primary_type(self, vault):
        with pytest.raises(ValidationError):
            reconcile([["x"]], _settings(primary_type_id="wallet", columns={}), vault)

    def test_map_without_label_column(self, vault):
        with pytest.raises(ValidationError):
            reconcile([["x"]], _settings(label_column=None), vault)

    def test_mapping_to_other_type(self, vault):
        with pytest.raises(ValidationError):
            reconcile(
                [["x", "y"]],
                _settings(columns={1: ColumnMapping.parse("field:email:address")}),
                vault,
            )

    def test_label_column_out_of_range(self):
        session = ImportSession()
        session.load("a||b")
        with pytest.raises(ValidationError, match="out of range"):
            session.configure(_settings(label_column=2))


class TestLinkedLookup:
    def test_resolves_to_service_id(self, vault):
        plan = reconcile([["acct-1", "a@x.com"]], _settings(), vault)
        assert plan.accepted_count == 1
        assert plan.accepted[0].data == {"email_ref": "s1"}
        assert plan.accepted[0].service_type_id == "account"

    def test_missing_target_skipped(self, vault):
        plan = reconcile([["acct-1", "missing@x.com"]], _settings(), vault)
        assert plan.accepted == []
        assert plan.skipped_count == 1
        assert plan.skipped[0].reason == SkipReason.UNRESOLVED_LINK

    def test_same_key_lookup_by_default(self, vault, email_type):
        account_type = ServiceType(
            id="account",
            name="Account",
            fields=[
                ServiceField(
                    id="f",
                    key="address",
                    label="Email",
                    type=FieldType.LINKED_SERVICE,
                    linked_service_type_id="email",
                )
            ],
        )
        vault = vault.model_copy(update={"service_types": [email_type, account_type]})
        settings = _settings(columns={1: ColumnMapping.parse("field:account:address")})
        plan = reconcile([["acct-1", "b@x.com"]], settings, vault)
        assert plan.accepted[0].data == {"address": "s2"}

    def test_default_lookup_fails_when_target_key_differs(self, vault):
        settings = _settings(columns={1: ColumnMapping.parse("field:account:email_ref")})
        plan = reconcile([["acct-1", "a@x.com"]], settings, vault)
        assert plan.accepted == []
        assert plan.skipped[0].reason == SkipReason.UNRESOLVED_LINK
        assert "email_ref" in plan.skipped[0].detail

    def test_target_type_deleted(self, vault, account_type):
        vault = vault.model_copy(update={"service_types": [account_type]})
        plan = reconcile([["acct-1", "a@x.com"]], _settings(), vault)
        assert plan.skipped[0].reason == SkipReason.UNRESOLVED_LINK

    def test_one_bad_row_does_not_stop_others(self, vault):
        rows = [["r1", "a@x.com"], ["r2", "nope@x.com"], ["r3", "b@x.com"]]
        plan = reconcile(rows, _settings(), vault)
        assert [s.label for s in plan.accepted] == ["r1", "r3"]
        assert [s.row_index for s in plan.skipped] == [1]


class TestRowMapping:
    def test_plain_fields_and_tags(self, vault):
        settings = _settings(
            columns={
                1: ColumnMapping.parse("field:account:login"),
                2: ColumnMapping.parse("tags"),
                3: ColumnMapping.parse("ignore"),
            }
        )
        plan = reconcile([["acct-1", "neo", " a, b ,,c ", "junk"]], settings, vault)
        service = plan.accepted[0]
        assert service.data == {"login": "neo"}
        assert service.tags == ["a", "b", "c"]

    def test_later_tags_column_wins(self, vault):
        tags = ColumnMapping.parse("tags")
        plan = reconcile([["acct-1", "a", "b"]], _settings(columns={1: tags, 2: tags}), vault)
        assert plan.accepted[0].tags == ["b"]

    def test_empty_cells_skipped(self, vault):
        settings = _settings(columns={1: ColumnMapping.parse("field:account:login")})
        plan = reconcile([["acct-1", "  "]], settings, vault)
        assert plan.accepted[0].data == {}

    def test_unknown_key_ignored(self, vault):
        settings = _settings(columns={1: ColumnMapping.parse("field:account:nickname")})
        plan = reconcile([["acct-1", "neo"]], settings, vault)
        assert plan.accepted[0].data == {}

    def test_label_column_not_mapped_as_data(self, vault):
        settings = _settings(columns={0: ColumnMapping.parse("field:account:login")})
        plan = reconcile([["acct-1"]], settings, vault)
        assert plan.accepted[0].label == "acct-1"
        assert plan.accepted[0].data == {}

    def test_missing_label(self, vault):
        plan = reconcile([["", "a@x.com"], ["acct-2"]], _settings(columns={}), vault)
        assert [s.label for s in plan.accepted] == ["acct-2"]
        assert plan.skipped[0].reason == SkipReason.MISSING_LABEL

    def test_ids_from_factory(self, vault, id_factory):
        plan = reconcile([["a"], ["b"]], _settings(columns={}), vault, id_factory)
        assert [s.id for s in plan.accepted] == ["id-1", "id-2"]


class TestDuplicates:
    def test_duplicate_within_batch(self, vault):
        plan = reconcile([["same"], ["same"]], _settings(columns={}), vault)
        assert plan.accepted_count == 1
        assert plan.skipped_count == 1
        assert plan.skipped[0].reason == SkipReason.DUPLICATE

    def test_duplicate_against_catalog(self, vault):
        vault = vault.model_copy(
            update={
                "services": [
                    *vault.services,
                    Service(id="s7", service_type_id="account", label="taken"),
                ]
            }
        )
        plan = reconcile([["taken"]], _settings(columns={}), vault)
        assert plan.skipped[0].reason == SkipReason.DUPLICATE

    def test_same_label_other_type_is_fine(self, vault):
        plan = reconcile([["mail-1"]], _settings(columns={}), vault)
        assert plan.accepted_count == 1

    def test_skips_logged(self, vault, caplog):
        with caplog.at_level(logging.WARNING, logger="vaultkeeper.importer.reconciler"):
            reconcile([["same"], ["same"]], _settings(columns={}), vault)
        assert "1 skipped" in caplog.text


class TestGeneratedLabels:
    def _generate(self, **overrides):
        values = {"label_strategy": LabelStrategy.GENERATE, "label_column": None, "columns": {}}
        values.update(overrides)
        return _settings(**values)

    def test_starts_at_start_number(self, vault):
        plan = reconcile([["x"], ["y"]], self._generate(label_start=10), vault)
        assert [s.label for s in plan.accepted] == ["ACC10", "ACC11"]

    def test_continues_after_existing(self, vault):
        vault = vault.model_copy(
            update={
                "services": [
                    *vault.services,
                    Service(id="a", service_type_id="email", label="ACC7"),
                    Service(id="b", service_type_id="email", label="ACC12x"),
                    Service(id="c", service_type_id="email", label="ACCx"),
                ]
            }
        )
        assert next_label_number(vault, "ACC", 1) == 13
        plan = reconcile([["x"]], self._generate(), vault)
        assert plan.accepted[0].label == "ACC13"

    def test_skipped_rows_do_not_consume_numbers(self, vault):
        settings = self._generate(columns={0: EMAIL_REF})
        plan = reconcile([["a@x.com"], ["nope"], ["b@x.com"]], settings, vault)
        assert [s.label for s in plan.accepted] == ["ACC1", "ACC2"]

    def test_pattern_from_config(self, vault, monkeypatch):
        monkeypatch.setenv("VAULTKEEPER_IMPORT_LABEL_PATTERN", "MAIL-")
        plan = reconcile([["x"]], self._generate(), vault)
        assert plan.accepted[0].label == "MAIL-1"

    def test_empty_pattern(self, vault):
        with pytest.raises(ValidationError):
            reconcile([["x"]], self._generate(label_pattern=""), vault)


class TestImportSession:
    def test_state_progression(self, vault):
        session = ImportSession()
        assert session.state == ImportState.EMPTY
        session.load("acct-1||a@x.com")
        assert session.state == ImportState.PARSED
        session.configure(_settings())
        assert session.state == ImportState.CONFIGURED
        plan = session.preview(vault)
        assert session.state == ImportState.PREVIEWED
        assert plan.accepted_count == 1

    def test_reload_resets_configuration(self):
        session = ImportSession()
        session.load("a||b")
        session.configure(_settings())
        session.load("c||d")
        assert session.state == ImportState.PARSED
        assert session.settings is None

    def test_empty_text(self):
        session = ImportSession()
        session.load("\n\n")
        assert session.state == ImportState.EMPTY
        with pytest.raises(ValidationError):
            session.configure(_settings())

    def test_preview_requires_configuration(self, vault):
        session = ImportSession()
        session.load("a||b")
        with pytest.raises(ValidationError):
            session.preview(vault)

    def test_separator_from_config(self, monkeypatch):
        monkeypatch.setenv("VAULTKEEPER_IMPORT_SEPARATOR", ";")
        session = ImportSession()
        assert session.load("a;b").rows == [["a", "b"]]

    @pytest.mark.asyncio
    async def test_commit(self, store, gateway):
        await store.unlock("pw")
        session = ImportSession()
        session.load("acct-1||a@x.com\nacct-2||missing@x.com\nacct-1||b@x.com")
        session.configure(_settings())

        outcome = await session.commit(store)

        assert (outcome.accepted, outcome.skipped) == (1, 2)
        assert session.state == ImportState.COMMITTED
        assert [c[0] for c in gateway.calls].count("add_services") == 1
        added = [s for s in store.vault.services if s.service_type_id == "account"]
        assert [(s.label, s.data) for s in added] == [("acct-1", {"email_ref": "s1"})]

    @pytest.mark.asyncio
    async def test_commit_nothing_accepted(self, store, gateway):
        await store.unlock("pw")
        session = ImportSession()
        session.load("acct-1||missing@x.com")
        session.configure(_settings())
        outcome = await session.commit(store)
        assert (outcome.accepted, outcome.skipped) == (0, 1)
        assert "add_services" not in [c[0] for c in gateway.calls]
        assert session.state == ImportState.COMMITTED

    @pytest.mark.asyncio
    async def test_commit_failure(self, store, gateway):
        await store.unlock("pw")
        before = store.vault
        session = ImportSession()
        session.load("acct-1||a@x.com")
        session.configure(_settings())
        gateway.fail_next("write failed")
        with pytest.raises(BackendError):
            await session.commit(store)
        assert store.vault is before
        assert session.state == ImportState.PREVIEWED

    @pytest.mark.asyncio
    async def test_commit_locked(self, store):
        session = ImportSession()
        session.load("acct-1||a@x.com")
        session.configure(_settings())
        with pytest.raises(ValidationError):
            await session.commit(store)
