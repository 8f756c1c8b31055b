"""
Tests for the seeder engine.
"""

from enum import Enum

import pytest
from sqlalchemy import select

from conftest import Currency, code_seed, widget_names
from sqlalchemy_seedfile import Seeder, SeedLedger, TimestampSeeder, set_environment
from sqlalchemy_seedfile.core.seeder import SeedFile, SeedFormat, list_seed_files
from sqlalchemy_seedfile.exceptions import (
    InvalidDirectory,
    InvalidEntityData,
    MissingSeedFiles,
    NoSeederAvailable,
    SeedExecutionError,
    SeedLoadError,
    UnknownEntityType,
)


class Stage(Enum):
    TEST = "test"
    PRODUCTION = "production"


def ledger_rows(session):
    return SeedLedger(session).select_applied()


class TestSeedFiles:
    """Test suite for seed file discovery."""

    def test_parse_matching_names(self, seeds_dir):
        for name in ["20200101_a.py", "20200101_b.yml", "20200101_c.YAML", "20200101_d.json"]:
            (seeds_dir / name).write_text("")

        formats = {f.filename: f.format for f in list_seed_files(seeds_dir)}

        assert formats == {
            "20200101_a.py": SeedFormat.CODE,
            "20200101_b.yml": SeedFormat.YAML,
            "20200101_c.YAML": SeedFormat.YAML,
            "20200101_d.json": SeedFormat.JSON,
        }

    def test_non_matching_files_are_ignored(self, seeds_dir):
        for name in ["readme.md", "seed.py", "_20200101.py", "20200101_a.txt", "20200101.py"]:
            (seeds_dir / name).write_text("")
        (seeds_dir / "20200101_dir.py").mkdir()

        assert list_seed_files(seeds_dir) == []

    def test_files_are_ordered_by_numeric_prefix(self, seeds_dir):
        for name in ["20_b.py", "5_c.py", "100_a.py", "20_a.py"]:
            (seeds_dir / name).write_text("")

        assert [f.filename for f in list_seed_files(seeds_dir)] == [
            "5_c.py",
            "20_a.py",
            "20_b.py",
            "100_a.py",
        ]

    def test_prefix(self, seeds_dir):
        path = seeds_dir / "20150928000000_initial_seed.py"
        path.write_text("")

        assert SeedFile.parse(path).prefix == 20150928000000


class TestSeederClass:
    """Test suite for strategy selection."""

    def test_timestamp_prefixes_select_timestamp_seeder(self, seeds_dir):
        (seeds_dir / "20200101000000_a.py").write_text("")

        assert Seeder.seeder_class(seeds_dir) is TimestampSeeder

    def test_empty_directory_has_no_seeder(self, session, seeds_dir):
        with pytest.raises(NoSeederAvailable) as exc_info:
            Seeder.apply(session, seeds_dir)

        assert "seeder not available for files" in str(exc_info.value)
        assert str(seeds_dir) in str(exc_info.value)

    def test_small_prefixes_have_no_seeder(self, seeds_dir):
        (seeds_dir / "5_a.py").write_text("")

        with pytest.raises(NoSeederAvailable):
            Seeder.seeder_class(seeds_dir)

    def test_explicit_strategy_is_kept(self, seeds_dir):
        assert TimestampSeeder.seeder_class(seeds_dir) is TimestampSeeder

    def test_explicit_strategy_tolerates_empty_directory(self, session, seeds_dir):
        result = TimestampSeeder.apply(session, seeds_dir)

        assert result.applied == []
        assert ledger_rows(session) == []

    def test_invalid_directory(self, session, tmp_path):
        with pytest.raises(InvalidDirectory):
            Seeder.apply(session, tmp_path / "missing")

        with pytest.raises(InvalidDirectory):
            TimestampSeeder.apply(session, tmp_path / "missing")


class TestApply:
    """Test suite for applying seeds."""

    def test_code_seed_is_applied_once(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_widget.py", code_seed("from code"))

        first = Seeder.apply(session, seeds_dir)
        second = Seeder.apply(session, seeds_dir)

        assert first.applied == ["20200101000000_widget.py"]
        assert second.applied == []
        assert widget_names(session) == ["from code"]
        assert ledger_rows(session) == ["20200101000000_widget.py"]

    def test_ledger_stores_lower_cased_names(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_AddWidget.py", code_seed("upper"))

        Seeder.apply(session, seeds_dir)
        Seeder.apply(session, seeds_dir)

        assert ledger_rows(session) == ["20200101000000_addwidget.py"]
        assert widget_names(session) == ["upper"]

    def test_ordering_by_prefix(self, session, seeds_dir, write_seed):
        write_seed("20_twenty.py", code_seed("20"))
        write_seed("5_five.py", code_seed("5"))
        write_seed("100_hundred.py", code_seed("100"))

        result = TimestampSeeder.apply(session, seeds_dir)

        assert result.applied == ["5_five.py", "20_twenty.py", "100_hundred.py"]
        assert widget_names(session) == ["5", "20", "100"]

    def test_injected_seed_decorator(self, session, seeds_dir, write_seed):
        write_seed(
            "20200101000000_injected.py",
            """
            from sqlalchemy import text


            @seed
            def add_widget(session):
                session.execute(text("INSERT INTO widgets (name) VALUES ('injected')"))
            """,
        )

        Seeder.apply(session, seeds_dir)

        assert widget_names(session) == ["injected"]

    def test_every_seed_of_a_file_runs_with_one_ledger_row(self, session, seeds_dir, write_seed):
        write_seed(
            "20200101000000_two.py",
            """
            from sqlalchemy import text
            from sqlalchemy_seedfile import seed


            @seed()
            def first(session):
                session.execute(text("INSERT INTO widgets (name) VALUES ('first')"))


            @seed("production")
            def production_only(session):
                session.execute(text("INSERT INTO widgets (name) VALUES ('production')"))


            @seed("test")
            def second():
                pass
            """,
        )

        Seeder.apply(session, seeds_dir)

        assert widget_names(session) == ["first"]
        assert ledger_rows(session) == ["20200101000000_two.py"]

    def test_file_without_seed_is_skipped(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_empty.py", "VALUE = 1\n")

        result = Seeder.apply(session, seeds_dir)

        assert result.applied == []
        assert result.skipped == ["20200101000000_empty.py"]
        assert ledger_rows(session) == []

    def test_broken_code_seed_is_a_load_error(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_broken.py", "import not_a_real_module_for_seeds\n")

        with pytest.raises(SeedLoadError) as exc_info:
            Seeder.apply(session, seeds_dir)

        assert "20200101000000_broken.py" in str(exc_info.value)


class TestEnvironments:
    """Test suite for environment filtering."""

    def test_matching_environment(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_widget.py", code_seed("matching", "development", "test"))

        Seeder.apply(session, seeds_dir)

        assert widget_names(session) == ["matching"]

    def test_other_environment_is_skipped(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_widget.py", code_seed("other", "production"))

        result = Seeder.apply(session, seeds_dir)

        assert widget_names(session) == []
        assert ledger_rows(session) == []
        assert result.skipped == ["20200101000000_widget.py"]

    def test_skipped_seed_applies_once_environment_matches(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_widget.py", code_seed("later", "production"))

        Seeder.apply(session, seeds_dir)
        Seeder.apply(session, seeds_dir, environment="production")

        assert widget_names(session) == ["later"]

    @pytest.mark.parametrize(
        "active, declared",
        [
            ("test", "test"),
            (Stage.TEST, "test"),
            ("test", ":test"),
            (Stage.TEST, "TEST"),
            ("TEST", "test"),
        ],
    )
    def test_string_and_enum_labels_are_equivalent(self, session, seeds_dir, write_seed, active, declared):
        set_environment(active)
        write_seed("20200101000000_widget.py", code_seed("label", declared))

        Seeder.apply(session, seeds_dir)

        assert widget_names(session) == ["label"]

    @pytest.mark.parametrize("active", ["development", "test", "production", Stage.PRODUCTION])
    def test_wildcard_seed_applies_everywhere(self, session, seeds_dir, write_seed, active):
        set_environment(active)
        write_seed("20200101000000_widget.py", code_seed("wildcard"))

        Seeder.apply(session, seeds_dir)

        assert widget_names(session) == ["wildcard"]

    def test_environment_option_overrides_process_environment(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_widget.py", code_seed("staging", "staging"))

        result = Seeder.apply(session, seeds_dir, environment="Staging")

        assert result.environment == "staging"
        assert widget_names(session) == ["staging"]


class TestDataSeeds:
    """Test suite for YAML and JSON seeds."""

    def test_basic_yaml_seed(self, session, seeds_dir, write_seed, models):
        write_seed(
            "20200101000000_widget.yml",
            """
            environment: :test
            widget:
              name: from yaml
            """,
        )

        Seeder.apply(session, seeds_dir, models=models)

        assert widget_names(session) == ["from yaml"]

    def test_yaml_seed_with_explicit_class(self, session, seeds_dir, write_seed, models):
        write_seed(
            "20200101000000_currencies.yaml",
            """
            currencies:
              class: Currency
              entries:
                - {abbr: USD, name: United States dollar}
                - {abbr: BRL, name: Brazilian real}
            """,
        )

        Seeder.apply(session, seeds_dir, models=models)

        abbrs = session.execute(select(Currency.abbr).order_by(Currency.id)).scalars().all()
        assert abbrs == ["USD", "BRL"]

    def test_yaml_documents_filtered_by_environment(self, session, seeds_dir, write_seed, models):
        write_seed(
            "20200101000000_widgets.yml",
            """
            - environment: :test
              model:
                class: Widget
                entries:
                  - name: for test
            - environment: :another_test
              widget:
                name: for another
            """,
        )

        Seeder.apply(session, seeds_dir, models=models)

        assert widget_names(session) == ["for test"]

    def test_yaml_seed_for_other_environment(self, session, seeds_dir, write_seed, models):
        write_seed(
            "20200101000000_widget.yml",
            """
            environment: production
            widget:
              name: nope
            """,
        )

        result = Seeder.apply(session, seeds_dir, models=models)

        assert widget_names(session) == []
        assert ledger_rows(session) == []
        assert result.skipped == ["20200101000000_widget.yml"]

    def test_json_seeds(self, session, seeds_dir, write_seed, models):
        write_seed(
            "20200101000000_widget.json",
            """
            {"environment": "test", "widget": {"name": "from json"}}
            """,
        )
        write_seed(
            "20200101000001_widgets.json",
            """
            [
              {"environment": ["test", "development"],
               "model": {"class": "Widget", "entries": [{"name": "listed"}]}},
              {"environment": "another_test",
               "model": {"class": "Widget", "entries": [{"name": "not listed"}]}}
            ]
            """,
        )

        Seeder.apply(session, seeds_dir, models=models)

        assert widget_names(session) == ["from json", "listed"]

    def test_unknown_entity_type_fails_before_applying(self, session, seeds_dir, write_seed, models):
        write_seed("20200101000000_widget.py", code_seed("first"))
        write_seed("20200101000001_gadget.yml", "gadget:\n  name: x\n")

        with pytest.raises(UnknownEntityType):
            Seeder.apply(session, seeds_dir, models=models)

        assert widget_names(session) == []
        assert ledger_rows(session) == []

    def test_invalid_entity_data(self, session, seeds_dir, write_seed, models):
        write_seed("20200101000000_widget.yml", "widget:\n  name: ''\n")

        with pytest.raises(SeedExecutionError) as exc_info:
            Seeder.apply(session, seeds_dir, models=models)

        assert isinstance(exc_info.value.__cause__, InvalidEntityData)
        assert ledger_rows(session) == []

    def test_mixed_format_batch(self, session, seeds_dir, write_seed, models):
        write_seed("20200101000020_widget.yml", "widget:\n  name: from yaml\n")
        write_seed("20200101000010_widget.py", code_seed("from code"))

        result = Seeder.apply(session, seeds_dir, models=models)

        assert result.applied == ["20200101000010_widget.py", "20200101000020_widget.yml"]
        assert widget_names(session) == ["from code", "from yaml"]
        assert ledger_rows(session) == ["20200101000010_widget.py", "20200101000020_widget.yml"]


class TestLedgerDrift:
    """Test suite for ledger/filesystem drift."""

    def test_missing_seed_files(self, session, seeds_dir, write_seed):
        ledger = SeedLedger(session)
        ledger.ensure_schema()
        ledger.insert_applied("20190101000000_gone.py")
        session.commit()
        write_seed("20200101000000_widget.py", code_seed("new"))

        with pytest.raises(MissingSeedFiles) as exc_info:
            Seeder.apply(session, seeds_dir)

        assert exc_info.value.missing == ["20190101000000_gone.py"]
        assert widget_names(session) == []

    def test_allow_missing_seed_files(self, session, seeds_dir, write_seed):
        ledger = SeedLedger(session)
        ledger.ensure_schema()
        ledger.insert_applied("20190101000000_gone.py")
        session.commit()
        write_seed("20200101000000_widget.py", code_seed("new"))

        Seeder.apply(session, seeds_dir, allow_missing_seed_files=True)

        assert widget_names(session) == ["new"]

    def test_custom_ledger_table_and_column(self, session, seeds_dir, write_seed):
        write_seed("20200101000000_widget.py", code_seed("custom"))

        Seeder.apply(session, seeds_dir, table="applied_seeds", column="seed_file")

        assert SeedLedger(session, table="applied_seeds", column="seed_file").select_applied() == [
            "20200101000000_widget.py"
        ]


class TestFailures:
    """Test suite for failure isolation."""

    def test_failure_stops_the_run(self, session, seeds_dir, write_seed):
        write_seed("20200101000001_one.py", code_seed("one"))
        write_seed("20200101000002_two.py", code_seed("two", fail=True))
        write_seed("20200101000003_three.py", code_seed("three"))

        with pytest.raises(SeedExecutionError) as exc_info:
            Seeder.apply(session, seeds_dir)

        assert exc_info.value.filename == "20200101000002_two.py"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert widget_names(session) == ["one"]
        assert ledger_rows(session) == ["20200101000001_one.py"]

    def test_retry_after_fix(self, session, seeds_dir, write_seed):
        write_seed("20200101000001_one.py", code_seed("one"))
        write_seed("20200101000002_two.py", code_seed("two", fail=True))

        with pytest.raises(SeedExecutionError):
            Seeder.apply(session, seeds_dir)

        write_seed("20200101000002_two.py", code_seed("two"))
        result = Seeder.apply(session, seeds_dir)

        assert result.applied == ["20200101000002_two.py"]
        assert widget_names(session) == ["one", "two"]

    def test_without_transactions_partial_changes_are_kept(self, session, seeds_dir, write_seed):
        write_seed("20200101000001_one.py", code_seed("partial", fail=True))

        with pytest.raises(SeedExecutionError):
            Seeder.apply(session, seeds_dir, use_transactions=False)

        assert widget_names(session) == ["partial"]
        assert ledger_rows(session) == []

    def test_default_transactions_follow_dialect(self, session, seeds_dir, write_seed):
        write_seed("20200101000001_one.py", code_seed("one"))

        seeder = TimestampSeeder(session, seeds_dir)

        assert seeder.use_transactions is True
        assert TimestampSeeder(session, seeds_dir, use_transactions=False).use_transactions is False


class TestStatus:
    """Test suite for status reporting."""

    def test_status(self, session, seeds_dir, write_seed):
        write_seed("20200101000001_one.py", code_seed("one"))
        Seeder.apply(session, seeds_dir)
        write_seed("20200101000002_two.py", code_seed("two"))

        status = Seeder.status(session, seeds_dir)

        assert status.applied == ["20200101000001_one.py"]
        assert status.pending == ["20200101000002_two.py"]
        assert status.missing == []
        assert widget_names(session) == ["one"]

