"""Tests for vaultkeeper.catalog.search — fuzzy search and natural sort."""

import pytest

from vaultkeeper.catalog.models import Service
from vaultkeeper.catalog.search import (
    SortKey,
    SortOrder,
    all_tags,
    fuzzy_score,
    natural_compare,
    natural_key,
    search_accounts,
    search_services,
)


class TestNaturalSort:
    def test_numeric_aware(self):
        assert natural_compare("Work2", "Work10") < 0
        assert natural_compare("Work10", "Work2") > 0

    @pytest.mark.parametrize("text", ["", "Work1", "ACC007", "mail-2", "Café 3"])
    def test_reflexive(self, text):
        assert natural_compare(text, text) == 0

    def test_case_insensitive(self):
        assert natural_compare("work2", "WORK2") == 0

    def test_accents_ignored(self):
        assert natural_compare("Café", "cafe") == 0

    def test_sorted_with_key(self):
        labels = ["Work10", "work1", "Work2", "Alpha", "Work01x"]
        assert sorted(labels, key=natural_key) == ["Alpha", "work1", "Work01x", "Work2", "Work10"]

    def test_mixed_chunks_never_compare_int_to_str(self):
        assert sorted(["10", "a", "2b"], key=natural_key) == ["2b", "10", "a"]

    @pytest.mark.parametrize("text", ["፩", "Work፩", "\U00010a40x"])
    def test_non_decimal_digits_compare_as_text(self, text):
        assert natural_compare(text, "Work1") != 0
        assert natural_compare(text, text) == 0

    def test_other_decimal_scripts_are_numeric(self):
        assert natural_compare("Work٢", "Work10") < 0


class TestSortOrder:
    def test_cycle(self):
        order = SortOrder.NONE
        seen = []
        for _ in range(4):
            order = order.next()
            seen.append(order)
        assert seen == [SortOrder.ASC, SortOrder.DESC, SortOrder.NONE, SortOrder.ASC]


class TestFuzzyScore:
    def test_exact_substring(self):
        assert fuzzy_score("work", "Work10") == 0.0

    def test_typo_within_threshold(self):
        assert fuzzy_score("gmial", "gmail") <= 0.3

    def test_unrelated(self):
        assert fuzzy_score("discord", "Work1") > 0.3

    def test_empty(self):
        assert fuzzy_score("", "Work1") == 1.0
        assert fuzzy_score("work", "") == 1.0


class TestSearchAccounts:
    def test_empty_query_returns_all(self, vault):
        assert [a.label for a in search_accounts(vault.accounts)] == ["Work1", "Work10", "Work2"]

    def test_fuzzy_then_sort(self, vault):
        results = search_accounts(vault.accounts, "work", sort=SortOrder.ASC)
        assert [a.label for a in results] == ["Work1", "Work2", "Work10"]

    def test_desc(self, vault):
        results = search_accounts(vault.accounts, sort=SortOrder.DESC)
        assert [a.label for a in results] == ["Work10", "Work2", "Work1"]

    def test_notes_searched(self, vault):
        assert [a.id for a in search_accounts(vault.accounts, "backup")] == ["acc-3"]

    def test_tag_filter_is_and(self, vault):
        results = search_accounts(vault.accounts, "work", tag="farm", sort=SortOrder.ASC)
        assert [a.label for a in results] == ["Work2", "Work10"]

    def test_no_match(self, vault):
        assert search_accounts(vault.accounts, "discord") == []

    def test_threshold_override(self, vault, monkeypatch):
        monkeypatch.setenv("VAULTKEEPER_FUZZY_THRESHOLD", "0.0")
        assert search_accounts(vault.accounts, "wrok") == []


class TestSearchServices:
    def test_typo_finds_tag(self, vault):
        results = search_services(vault.services, "gmial")
        assert results[0].id == "s1"

    def test_type_filter(self, vault):
        extra = Service(id="s3", service_type_id="account", label="mail-3")
        results = search_services([*vault.services, extra], "mail", type_id="email")
        assert [s.id for s in results] == ["s1", "s2"]

    def test_tag_filter(self, vault):
        assert [s.id for s in search_services(vault.services, tag="gmail")] == ["s1"]

    def test_sort_by_name_desc(self, vault):
        results = search_services(vault.services, sort=SortOrder.DESC)
        assert [s.label for s in results] == ["mail-2", "mail-1"]

    def test_sort_by_type_survives_deleted_type(self, vault):
        orphan = Service(id="s9", service_type_id="deleted-type", label="zz")
        results = search_services(
            [*vault.services, orphan],
            sort=SortOrder.ASC,
            sort_by=SortKey.TYPE,
            service_types=vault.service_types,
        )
        assert [s.id for s in results] == ["s9", "s1", "s2"]


class TestAllTags:
    def test_first_seen_order(self, vault):
        assert all_tags(vault.accounts) == ["farm", "eu"]

    def test_mixed(self, vault):
        assert all_tags([*vault.services, *vault.accounts]) == ["gmail", "farm", "eu"]
