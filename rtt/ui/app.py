import sys
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QApplication,
    QDialog,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from rtt.common.logger import control_log, log
from rtt.core import config
from rtt.core.controller import TrainingProgramListControl, TrainingProgramListReceiver
from rtt.core.errors import TrainingProgramNotFound
from rtt.core.model import EntryType
from rtt.core.program_timer import ProgramTimer
from rtt.core.repository import JsonFileRepository
from rtt.ui.dialogs.settings import ConfigDialog
from rtt.ui.file_dialogs import QtFilePicker
from rtt.util.misc import format_duration

_ENTRY_TYPE_LABELS = {
    EntryType.TIMER: "Timer",
    EntryType.TRAINING_PACK: "Training Pack",
    EntryType.WORKSHOP_MAP: "Workshop Map",
}


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window of the application. Shows the training program list, the entries of the selected program, and a
# runner for the selected program. It only ever draws what the list control sends it through receive_snapshot.
class MainWindow(QMainWindow, TrainingProgramListReceiver):

    def __init__(self, control, settings):
        super().__init__()
        self.setWindowTitle("RL Training Timer")
        self.control = control
        self.settings = settings
        self._snapshot = None
        self._program_timer = None

        if settings["always_on_top"]:
            self.setWindowFlags(self.windowFlags() | Qt.WindowStaysOnTopHint)

        central = QWidget()
        self.setCentralWidget(central)
        main_lay = QVBoxLayout(central)

        # -- Workshop folder row --
        workshop_row = QHBoxLayout()
        workshop_row.addWidget(QLabel("Workshop folder:"))
        self._workshop_edit = QLineEdit()
        self._workshop_edit.setReadOnly(True)
        workshop_row.addWidget(self._workshop_edit, 1)
        workshop_row.addWidget(self._button("Browse...", self._on_browse_workshop))
        main_lay.addLayout(workshop_row)

        # -- Program list + entries --
        lists_row = QHBoxLayout()
        self._program_list = QListWidget()
        self._program_list.currentItemChanged.connect(self._on_selection_changed)
        self._program_list.itemDoubleClicked.connect(lambda _item: self._on_rename())
        lists_row.addWidget(self._program_list, 1)
        self._entry_list = QListWidget()
        lists_row.addWidget(self._entry_list, 1)
        main_lay.addLayout(lists_row, 1)

        # -- Program buttons --
        program_row = QHBoxLayout()
        program_row.addWidget(self._button("Add", self._on_add))
        program_row.addWidget(self._button("Remove", self._on_remove))
        program_row.addWidget(self._button("Rename", self._on_rename))
        program_row.addWidget(self._button("Up", lambda: self._on_move(-1)))
        program_row.addWidget(self._button("Down", lambda: self._on_move(1)))
        main_lay.addLayout(program_row)

        # -- File buttons --
        file_row = QHBoxLayout()
        file_row.addWidget(self._button("Import Program", self._on_import_program))
        file_row.addWidget(self._button("Export Program", self._on_export_program))
        file_row.addWidget(self._button("Load List", self._on_load_list))
        file_row.addWidget(self._button("Save List", self._on_save_list))
        file_row.addWidget(self._button("Settings", self._on_config))
        main_lay.addLayout(file_row)

        # -- Runner --
        runner_row = QHBoxLayout()
        self._runner_lbl = QLabel("")
        self._runner_lbl.setFont(QFont("Calibri", 14))
        runner_row.addWidget(self._runner_lbl, 1)
        self._start_btn = self._button("Start", self._on_start_stop)
        runner_row.addWidget(self._start_btn)
        runner_row.addWidget(self._button("Skip", self._on_skip))
        runner_row.addWidget(self._button("Reset", self._on_reset))
        main_lay.addLayout(runner_row)

        # -- Tick timer --
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._tick)
        self._timer.start(250)

    def _button(self, text, handler):
        btn = QPushButton(text)
        btn.clicked.connect(handler)
        return btn

    # ------------------------------------------------------------------ #
    #  Receiver                                                            #
    # ------------------------------------------------------------------ #

    def receive_snapshot(self, data):
        selected_id = self._selected_id()
        self._snapshot = data

        self._program_list.blockSignals(True)
        self._program_list.clear()
        for program in data.ordered_programs():
            label = f"{program.name}  ({format_duration(program.duration)})"
            if program.read_only:
                label += "  [read-only]"
            item = QListWidgetItem(label)
            item.setData(Qt.UserRole, program.id)
            self._program_list.addItem(item)
            if program.id == selected_id:
                self._program_list.setCurrentItem(item)
        self._program_list.blockSignals(False)

        self._workshop_edit.setText(data.workshop_folder_location)
        self._refresh_entries()

    # ------------------------------------------------------------------ #
    #  Selection helpers                                                   #
    # ------------------------------------------------------------------ #

    def _selected_id(self):
        item = self._program_list.currentItem()
        return item.data(Qt.UserRole) if item is not None else None

    def _selected_program(self):
        program_id = self._selected_id()
        if self._snapshot is None or program_id is None:
            return None
        return self._snapshot.programs.get(program_id)

    def _on_selection_changed(self, *_):
        self._refresh_entries()

    def _refresh_entries(self):
        self._entry_list.clear()
        program = self._selected_program()

        # The runner always follows the selected program. A changed or deselected program drops the old one.
        if program is None or self._program_timer is None or self._program_timer.program != program:
            self._program_timer = ProgramTimer(program) if program is not None else None
        if program is None:
            self._update_runner()
            return

        for entry in program.entries:
            text = f"{entry.name}  {format_duration(entry.duration)}  ({_ENTRY_TYPE_LABELS[entry.type]})"
            if entry.type == EntryType.TRAINING_PACK and entry.training_pack_code:
                text += f"  {entry.training_pack_code}"
            elif entry.type == EntryType.WORKSHOP_MAP and entry.workshop_map_path:
                text += f"  {entry.workshop_map_path}"
            self._entry_list.addItem(text)
        self._update_runner()

    # ------------------------------------------------------------------ #
    #  Button handlers                                                     #
    # ------------------------------------------------------------------ #

    def _on_add(self):
        self._run(self.control.add_program)

    def _on_remove(self):
        program = self._selected_program()
        if program is None:
            return
        if program.read_only:
            QMessageBox.information(self, "Read-only", f"'{program.name}' is read-only and can't be deleted.")
            return
        if self.settings["confirm_delete"]:
            if QMessageBox.question(
                    self, "Confirm Delete",
                    f"Delete '{program.name}'?"
            ) != QMessageBox.Yes:
                return
        self._run(self.control.remove_program, program.id)

    def _on_rename(self):
        program = self._selected_program()
        if program is None:
            return
        if program.read_only:
            QMessageBox.information(self, "Read-only", f"'{program.name}' is read-only and can't be renamed.")
            return
        name, ok = QInputDialog.getText(self, "Rename", "New name:", text=program.name)
        name = name.strip()
        if ok and name:
            self._run(self.control.rename_program, program.id, name)

    # Swaps the selected program with its neighbor above (-1) or below (+1).
    def _on_move(self, direction):
        row = self._program_list.currentRow()
        neighbor = row + direction
        if row < 0 or not 0 <= neighbor < self._program_list.count():
            return
        selected_id = self._program_list.item(row).data(Qt.UserRole)
        neighbor_id = self._program_list.item(neighbor).data(Qt.UserRole)
        self._run(self.control.swap_programs, selected_id, neighbor_id)

    def _on_browse_workshop(self):
        folder = QFileDialog.getExistingDirectory(self, "Workshop folder", self._workshop_edit.text())
        if folder:
            self._run(self.control.change_workshop_folder_location, folder)

    def _on_import_program(self):
        result = self._run(self.control.load_training_program)
        if result is not None and not result.ok:
            QMessageBox.warning(self, "Import Failed", f"Could not import the training program:\n{result.message}")

    def _on_export_program(self):
        program_id = self._selected_id()
        if program_id is not None:
            self._run(self.control.save_training_program, program_id)

    def _on_load_list(self):
        result = self._run(self.control.load_training_programs)
        if result is not None and not result.ok:
            QMessageBox.warning(self, "Load Failed", f"Could not load the training programs:\n{result.message}")

    def _on_save_list(self):
        self._run(self.control.save_training_programs)

    def _on_config(self):
        dlg = ConfigDialog(self, self.settings)
        if dlg.exec() != QDialog.Accepted:
            return
        self.settings["confirm_delete"] = dlg.chosen_confirm_delete
        self.settings["always_on_top"] = dlg.chosen_always_on_top
        self.settings["backup_min_minutes"] = dlg.chosen_backup_min_minutes
        self._save_settings()

    # Runs a control call, turning the errors a user can cause into message boxes. Anything else is a bug and is
    # left to propagate.
    def _run(self, action, *args):
        try:
            return action(*args)
        except TrainingProgramNotFound as e:
            log.warning(f"Training program operation failed: {e}")
            QMessageBox.warning(self, "Not Found", str(e))
        except OSError as e:
            log.error("Failed to write training programs", exc_info=True)
            QMessageBox.warning(self, "Save Error", f"Failed to save:\n{e}")
        return None

    # ------------------------------------------------------------------ #
    #  Runner                                                              #
    # ------------------------------------------------------------------ #

    def _on_start_stop(self):
        if self._program_timer is None:
            return
        if self._program_timer.running:
            self._program_timer.stop()
        else:
            self._program_timer.start()
        self._update_runner()

    def _on_skip(self):
        if self._program_timer is not None:
            self._program_timer.skip_entry()
            self._update_runner()

    def _on_reset(self):
        if self._program_timer is not None:
            self._program_timer.reset()
            self._update_runner()

    def _tick(self):
        if self._program_timer is not None and self._program_timer.running:
            if self._program_timer.finished:
                self._program_timer.stop()
            self._update_runner()

    def _update_runner(self):
        timer = self._program_timer
        if timer is None:
            self._runner_lbl.setText("")
            self._start_btn.setText("Start")
            return
        entry = timer.current_entry
        if entry is None:
            self._runner_lbl.setText("Finished")
        else:
            self._runner_lbl.setText(f"{entry.name}: {format_duration(timer.remaining_in_entry_ms)}")
        self._start_btn.setText("Stop" if timer.running else "Start")

    # ------------------------------------------------------------------ #
    #  Persistence helpers                                                 #
    # ------------------------------------------------------------------ #

    def _save_settings(self):
        try:
            config.save_settings(self.settings)
        except OSError as e:
            log.error("Failed to save settings", exc_info=True)
            QMessageBox.warning(self, "Save Error", f"Failed to save settings:\n{e}")

    def closeEvent(self, event):
        self._save_settings()
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    settings = config.load_settings()

    repository = JsonFileRepository(config.PROGRAM_LIST_PATH, config.BACKUP_DIR, settings["backup_min_minutes"])
    picker = QtFilePicker(settings)
    control = TrainingProgramListControl(repository, control_log, picker)

    window = MainWindow(control, settings)
    picker.parent = window
    control.register_receiver(window)

    result = control.restore_from_storage()
    if not result.ok:
        QMessageBox.warning(window, "Load Failed",
                            f"Could not load the saved training programs, starting empty:\n{result.message}")
        window.receive_snapshot(control.get_list_snapshot())

    window.show()
    sys.exit(app.exec())
