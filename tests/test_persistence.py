"""Tests for storing and loading training programs.

Covers: rtt.core.serialization, rtt.core.repository, rtt.core.backup, rtt.core.config,
rtt.core.program_timer, rtt.util.misc, rtt.common.logger
"""

import json
import os
import shutil
import tempfile
import time
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import patch

os.environ.setdefault("RLTT_HOME", tempfile.mkdtemp(prefix="rltt_tests_"))


def _sample_list():
    from rtt.core.model import Entry, EntryType, ProgramRecord, TrainingProgramListData
    first = ProgramRecord(
        id="11111111-aaaa",
        name="Warmup routine",
        duration=300000,
        entries=[
            Entry("Free play", 120000),
            Entry("Aerials", 180000, EntryType.TRAINING_PACK, training_pack_code="A503-264C-A7EB-D282"),
        ],
    )
    second = ProgramRecord(
        id="22222222-bbbb",
        name="Bundled",
        duration=60000,
        entries=[Entry("Obstacle course", 60000, EntryType.WORKSHOP_MAP, workshop_map_path="Obstacle/course.udk")],
        read_only=True,
    )
    return TrainingProgramListData(
        order=(second.id, first.id),
        programs={first.id: first, second.id: second},
        workshop_folder_location="C:/Games/rocketleague/TAGame/CookedPCConsole/mods",
    )


# ──────────────────────────────────────────────────────────────────────────
# serialization.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestSerialization(unittest.TestCase):

    def test_list_document_field_names(self):
        from rtt.core.serialization import list_to_dict
        document = list_to_dict(_sample_list())
        self.assertEqual(set(document), {"TrainingProgramOrder", "TrainingProgramData", "WorkshopFolderLocation"})
        self.assertEqual(document["TrainingProgramOrder"], ["22222222-bbbb", "11111111-aaaa"])

        program = document["TrainingProgramData"]["11111111-aaaa"]
        self.assertEqual(set(program), {"Id", "Name", "Duration", "Entries", "ReadOnly"})
        self.assertEqual(program["Duration"], 300000)
        self.assertEqual(program["Entries"][1], {
            "Name": "Aerials",
            "Duration": 180000,
            "Type": 1,
            "TrainingPackCode": "A503-264C-A7EB-D282",
            "WorkshopMapPath": "",
        })

    def test_dict_round_trip(self):
        from rtt.core.serialization import list_from_dict, list_to_dict
        document = json.loads(json.dumps(list_to_dict(_sample_list())))
        self.assertEqual(list_from_dict(document), _sample_list())

    def test_missing_optional_fields_are_defaulted(self):
        from rtt.core.model import EntryType
        from rtt.core.serialization import program_from_dict
        defaulted = set()
        program = program_from_dict({"Id": "x", "Entries": [{"Name": "Only a name"}]}, defaulted=defaulted)
        self.assertEqual(program.name, "New Training Program")
        self.assertEqual(program.entries[0].duration, 0)
        self.assertEqual(program.entries[0].type, EntryType.TIMER)
        self.assertIn("TrainingProgram.Name", defaulted)
        self.assertIn("TrainingProgram.Entries[0].Duration", defaulted)

    def test_wrong_shapes_are_rejected(self):
        from rtt.core.errors import ProgramParseError
        from rtt.core.serialization import program_from_dict
        bad_documents = [
            {"Id": "y", "Entries": "not-a-list"},
            {"Name": "No id"},
            {"Id": 42},
            {"Id": "y", "Duration": -1},
            {"Id": "y", "Duration": 1.5},
            {"Id": "y", "Duration": True},
            {"Id": "y", "ReadOnly": "yes"},
            {"Id": "y", "Entries": ["not an object"]},
            {"Id": "y", "Entries": [{"Type": 7}]},
            {"Id": "y", "Entries": [{"Duration": -5}]},
            ["not", "an", "object"],
        ]
        for document in bad_documents:
            with self.subTest(document=document):
                with self.assertRaises(ProgramParseError):
                    program_from_dict(document)

    def test_list_with_orphans_is_rejected(self):
        from rtt.core.errors import ProgramParseError
        from rtt.core.serialization import list_from_dict, list_to_dict
        document = list_to_dict(_sample_list())
        document["TrainingProgramOrder"].append("ghost")
        with self.assertRaises(ProgramParseError):
            list_from_dict(document)

        document = list_to_dict(_sample_list())
        document["TrainingProgramOrder"].pop()
        with self.assertRaises(ProgramParseError):
            list_from_dict(document)

    def test_list_with_duplicate_order_is_rejected(self):
        from rtt.core.errors import ProgramParseError
        from rtt.core.serialization import list_from_dict, list_to_dict
        document = list_to_dict(_sample_list())
        document["TrainingProgramOrder"].append(document["TrainingProgramOrder"][0])
        with self.assertRaises(ProgramParseError):
            list_from_dict(document)

    def test_list_key_must_match_id(self):
        from rtt.core.errors import ProgramParseError
        from rtt.core.serialization import list_from_dict, list_to_dict
        document = list_to_dict(_sample_list())
        programs = document["TrainingProgramData"]
        programs["renamed-key"] = programs.pop("11111111-aaaa")
        document["TrainingProgramOrder"] = ["22222222-bbbb", "renamed-key"]
        with self.assertRaises(ProgramParseError):
            list_from_dict(document)

    def test_empty_document_is_an_empty_list(self):
        from rtt.core.model import TrainingProgramListData
        from rtt.core.serialization import list_from_dict
        self.assertEqual(list_from_dict({}), TrainingProgramListData())


# ──────────────────────────────────────────────────────────────────────────
# repository.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestJsonFileRepository(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.default_path = self.tmpdir / "current" / "training_programs.json"
        self.backup_dir = self.tmpdir / "backups"

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _repository(self, backup_min_minutes=5):
        from rtt.core.repository import JsonFileRepository
        return JsonFileRepository(self.default_path, self.backup_dir, backup_min_minutes)

    def test_store_then_restore_round_trip(self):
        repository = self._repository()
        repository.store(_sample_list())
        result = repository.restore()
        self.assertTrue(result.ok)
        self.assertEqual(result.value, _sample_list())

    def test_store_and_restore_explicit_path(self):
        repository = self._repository()
        path = self.tmpdir / "export" / "mine.json"
        repository.store(_sample_list(), path)
        self.assertTrue(path.exists())
        self.assertFalse(self.default_path.exists())
        self.assertEqual(repository.restore(path).value, _sample_list())

    def test_missing_default_file_is_an_empty_list(self):
        from rtt.core.model import TrainingProgramListData
        result = self._repository().restore()
        self.assertTrue(result.ok)
        self.assertEqual(result.value, TrainingProgramListData())

    def test_missing_explicit_file_is_an_io_error(self):
        result = self._repository().restore(self.tmpdir / "nope.json")
        self.assertEqual(result.kind, "io")
        self.assertIsNone(result.value)

    def test_corrupted_default_file_is_a_parse_error(self):
        self.default_path.parent.mkdir(parents=True)
        self.default_path.write_text("{invalid json!!", encoding="utf-8")
        result = self._repository().restore()
        self.assertEqual(result.kind, "parse")
        self.assertFalse(result)

    def test_store_leaves_no_temp_file(self):
        self._repository().store(_sample_list())
        self.assertEqual([p.name for p in self.default_path.parent.iterdir()], ["training_programs.json"])

    def test_store_to_default_creates_one_backup_per_interval(self):
        repository = self._repository(backup_min_minutes=5)
        repository.store(_sample_list())
        repository.store(_sample_list())
        backups = list(self.backup_dir.iterdir())
        self.assertEqual(len(backups), 1)
        with open(backups[0], encoding="utf-8") as f:
            self.assertEqual(json.load(f)["TrainingProgramOrder"], ["22222222-bbbb", "11111111-aaaa"])

    def test_backup_interval_elapsed(self):
        repository = self._repository(backup_min_minutes=5)
        with patch("rtt.core.repository.time.monotonic", return_value=1000.0):
            repository.store(_sample_list())
        time.sleep(0.01)
        with patch("rtt.core.repository.time.monotonic", return_value=1000.0 + 5 * 60 + 1):
            repository.store(_sample_list())
        self.assertEqual(len(list(self.backup_dir.iterdir())), 2)

    def test_store_to_explicit_path_skips_backup(self):
        repository = self._repository()
        repository.store(_sample_list(), self.tmpdir / "export.json")
        self.assertFalse(self.backup_dir.exists())

    def test_backups_can_be_disabled(self):
        repository = self._repository(backup_min_minutes=None)
        repository.store(_sample_list())
        self.assertFalse(self.backup_dir.exists())

    def test_control_restore_from_disk_does_not_write(self):
        import logging
        from rtt.core.controller import TrainingProgramListControl
        repository = self._repository()
        repository.store(_sample_list())
        written_at = os.path.getmtime(self.default_path)

        with patch.object(repository, "store", wraps=repository.store) as store:
            control = TrainingProgramListControl(repository, logging.getLogger("rltt.tests"))
            self.assertTrue(control.restore_from_storage().ok)
            store.assert_not_called()
        self.assertEqual(control.get_list_snapshot(), _sample_list())
        self.assertEqual(os.path.getmtime(self.default_path), written_at)


# ──────────────────────────────────────────────────────────────────────────
# backup.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestBackup(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_create_backup_writes_document_unchanged(self):
        from rtt.core.backup import create_backup
        path = create_backup({"TrainingProgramOrder": []}, self.tmpdir, "test")
        self.assertTrue(path.name.startswith("programs_"))
        with open(path, encoding="utf-8") as f:
            self.assertEqual(json.load(f), {"TrainingProgramOrder": []})

    def test_parse_backup_time(self):
        from rtt.core.backup import _parse_backup_time
        dt = _parse_backup_time("programs_20260212_143011_123456.json")
        self.assertEqual((dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second), (2026, 2, 12, 14, 30, 11))
        self.assertIsNone(_parse_backup_time("garbage.json"))
        self.assertIsNone(_parse_backup_time("programs_notadate.json"))

    def test_prune_single_backup_safe(self):
        from rtt.core.backup import create_backup, prune_backups
        create_backup({}, self.tmpdir, "test")
        self.assertEqual(prune_backups(self.tmpdir), 0)
        self.assertEqual(len(os.listdir(self.tmpdir)), 1)

    def test_prune_nonexistent_dir_safe(self):
        from rtt.core.backup import prune_backups
        self.assertEqual(prune_backups(os.path.join(self.tmpdir, "nope")), 0)

    def test_tiered_retention(self):
        from rtt.core.backup import prune_backups, TIERS
        now = datetime.now()
        offsets_minutes = [0, 1, 2, 3, 4, 5, 8, 10, 15, 20, 30, 60, 120, 360, 720, 1440, 2880, 4320, 5760]
        for offset in offsets_minutes:
            ts = now - timedelta(minutes=offset)
            with open(os.path.join(self.tmpdir, f"programs_{ts.strftime('%Y%m%d_%H%M%S_%f')}.json"), "w") as f:
                json.dump({}, f)
        other = os.path.join(self.tmpdir, "notes.txt")
        with open(other, "w") as f:
            f.write("hello")

        prune_backups(self.tmpdir, now=now)

        remaining = [f for f in os.listdir(self.tmpdir) if f.startswith("programs_")]
        self.assertLessEqual(len(remaining), len(TIERS) + 1)
        self.assertGreaterEqual(len(remaining), 2)
        self.assertIn(f"programs_{now.strftime('%Y%m%d_%H%M%S_%f')}.json", remaining)
        self.assertTrue(os.path.exists(other))


# ──────────────────────────────────────────────────────────────────────────
# config.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestSettings(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        from rtt.core import config
        self._orig_settings_path = config.SETTINGS_PATH
        config.SETTINGS_PATH = Path(self.tmpdir) / "settings.json"

    def tearDown(self):
        from rtt.core import config
        config.SETTINGS_PATH = self._orig_settings_path
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_fresh_start_returns_defaults(self):
        from rtt.core.config import load_settings
        settings = load_settings()
        self.assertEqual(settings["backup_min_minutes"], 5)
        self.assertTrue(settings["confirm_delete"])
        self.assertFalse(settings["always_on_top"])
        self.assertEqual(settings["last_directory"], "")

    def test_save_and_load_roundtrip(self):
        from rtt.core.config import load_settings, save_settings
        settings = load_settings()
        settings["confirm_delete"] = False
        settings["last_directory"] = "C:/exports"
        save_settings(settings)
        loaded = load_settings()
        self.assertFalse(loaded["confirm_delete"])
        self.assertEqual(loaded["last_directory"], "C:/exports")

    def test_missing_and_mistyped_values_are_defaulted(self):
        from rtt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            json.dump({"confirm_delete": False, "backup_min_minutes": "ten"}, f)
        loaded = config.load_settings()
        self.assertFalse(loaded["confirm_delete"])
        self.assertEqual(loaded["backup_min_minutes"], 5)
        self.assertFalse(loaded["always_on_top"])

    def test_corrupted_settings_fall_back_to_defaults(self):
        from rtt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            f.write("{invalid json!!")
        self.assertEqual(config.load_settings(), config.build_default_settings())

    def test_non_object_settings_fall_back_to_defaults(self):
        from rtt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            json.dump([1, 2, 3], f)
        self.assertEqual(config.load_settings(), config.build_default_settings())

    def test_null_backup_interval_turns_backups_off(self):
        from rtt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            json.dump({"backup_min_minutes": None}, f)
        loaded = config.load_settings()
        self.assertIsNone(loaded["backup_min_minutes"])

        config.save_settings(loaded)
        self.assertIsNone(config.load_settings()["backup_min_minutes"])

    def test_null_is_only_accepted_where_it_means_something(self):
        from rtt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            json.dump({"confirm_delete": None, "backup_min_minutes": None}, f)
        loaded = config.load_settings()
        self.assertTrue(loaded["confirm_delete"])
        self.assertIsNone(loaded["backup_min_minutes"])

    def test_deeply_nested_settings_fall_back_to_defaults(self):
        from rtt.core import config
        with open(config.SETTINGS_PATH, "w") as f:
            f.write("[" * 200000 + "]" * 200000)
        self.assertEqual(config.load_settings(), config.build_default_settings())


# ──────────────────────────────────────────────────────────────────────────
# program_timer.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestProgramTimer(unittest.TestCase):

    def setUp(self):
        from rtt.core.model import Entry, ProgramRecord
        self.program = ProgramRecord(id="p", name="Session", entries=[Entry("Warmup", 60000), Entry("Shots", 180000)])
        patcher = patch("rtt.core.program_timer.time")
        self.fake_time = patcher.start()
        self.addCleanup(patcher.stop)
        self.fake_time.monotonic.return_value = 100.0

    def test_steps_through_entries(self):
        from rtt.core.program_timer import ProgramTimer
        timer = ProgramTimer(self.program)
        timer.start()
        self.fake_time.monotonic.return_value = 130.5
        self.assertEqual(timer.current_entry_index, 0)
        self.assertEqual(timer.remaining_in_entry_ms, 29500)

        self.fake_time.monotonic.return_value = 170.0
        self.assertEqual(timer.current_entry.name, "Shots")
        self.assertEqual(timer.remaining_in_entry_ms, 170000)

        self.fake_time.monotonic.return_value = 340.0
        self.assertTrue(timer.finished)
        self.assertIsNone(timer.current_entry)
        self.assertEqual(timer.remaining_in_entry_ms, 0)

    def test_stop_keeps_position(self):
        from rtt.core.program_timer import ProgramTimer
        timer = ProgramTimer(self.program)
        timer.start()
        self.fake_time.monotonic.return_value = 110.0
        timer.stop()
        self.fake_time.monotonic.return_value = 500.0
        self.assertFalse(timer.running)
        self.assertEqual(timer.elapsed_ms, 10000)

    def test_skip_entry(self):
        from rtt.core.program_timer import ProgramTimer
        timer = ProgramTimer(self.program)
        timer.start()
        timer.skip_entry()
        self.assertEqual(timer.current_entry_index, 1)
        self.assertEqual(timer.remaining_in_entry_ms, 180000)
        timer.skip_entry()
        self.assertTrue(timer.finished)
        self.assertFalse(timer.running)

    def test_reset(self):
        from rtt.core.program_timer import ProgramTimer
        timer = ProgramTimer(self.program)
        timer.start()
        self.fake_time.monotonic.return_value = 200.0
        timer.reset()
        self.assertFalse(timer.running)
        self.assertEqual(timer.current_entry_index, 0)

    def test_empty_program_never_runs(self):
        from rtt.core.model import ProgramRecord
        from rtt.core.program_timer import ProgramTimer
        timer = ProgramTimer(ProgramRecord(id="empty"))
        timer.start()
        self.assertFalse(timer.running)
        self.assertTrue(timer.finished)


# ──────────────────────────────────────────────────────────────────────────
# model.py / misc.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestModelHelpers(unittest.TestCase):

    def test_entry_rejects_negative_duration(self):
        from rtt.core.model import Entry
        with self.assertRaises(ValueError):
            Entry("Bad", -1)

    def test_duration_is_stored_independently(self):
        from rtt.core.model import Entry, ProgramRecord
        program = ProgramRecord(id="p", duration=1000, entries=[Entry("A", 60000), Entry("B", 30000)])
        self.assertEqual(program.duration, 1000)
        self.assertEqual(program.entries_duration, 90000)

    def test_format_duration(self):
        from rtt.util.misc import format_duration
        self.assertEqual(format_duration(0), "00:00")
        self.assertEqual(format_duration(61999), "01:01")
        self.assertEqual(format_duration(3723000), "01:02:03")
        self.assertEqual(format_duration(-500), "00:00")


# ──────────────────────────────────────────────────────────────────────────
# logger.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestLogger(unittest.TestCase):

    def setUp(self):
        self.tmpdir = Path(tempfile.mkdtemp())
        self.addCleanup(shutil.rmtree, self.tmpdir, ignore_errors=True)

    def _fresh_logger(self, name, **kwargs):
        from rtt.common.logger import get_logger
        logger = get_logger(name=name, log_dir=self.tmpdir, **kwargs)
        self.addCleanup(self._drop_handlers, logger)
        return logger

    @staticmethod
    def _drop_handlers(logger):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

    def test_control_log_writes_through_the_app_logger(self):
        from rtt.common.logger import APP_LOGGER_NAME, CONTROL_LOGGER_NAME, control_log, log
        self.assertEqual(log.name, APP_LOGGER_NAME)
        self.assertEqual(control_log.name, CONTROL_LOGGER_NAME)
        self.assertIs(control_log.parent, log)
        self.assertEqual(control_log.handlers, [])
        with self.assertLogs(APP_LOGGER_NAME, level="INFO") as captured:
            control_log.info("Added training program with uuid abc")
        self.assertEqual(captured.records[0].name, CONTROL_LOGGER_NAME)

    def test_get_logger_creates_run_files(self):
        logger = self._fresh_logger("rltt_files", historical_debugs=2)
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        self.assertIn("hello", (self.tmpdir / "latest.log").read_text(encoding="utf-8"))
        self.assertTrue((self.tmpdir / "rltt_files.log").exists())
        self.assertEqual(len(list((self.tmpdir / "debug").glob("rltt_files_*.log"))), 1)

    def test_get_logger_twice_does_not_duplicate_handlers(self):
        first = self._fresh_logger("rltt_twice", historical_debugs=1, console=True)
        handler_count = len(first.handlers)
        second = self._fresh_logger("rltt_twice", historical_debugs=1, console=True)
        self.assertIs(first, second)
        self.assertEqual(len(second.handlers), handler_count)


if __name__ == "__main__":
    unittest.main()
