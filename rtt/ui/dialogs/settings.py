"""Settings dialog for RL Training Timer."""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QCheckBox,
    QDialog,
    QFormLayout,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)

_DEFAULT_BACKUP_MIN_MINUTES = 5

# Small modal settings dialog. The chosen_* attributes are read back by MainWindow once the dialog is accepted.
# chosen_backup_min_minutes is None when backups are turned off.
class ConfigDialog(QDialog):

    def __init__(self, parent, cfg):
        super().__init__(parent)
        self.setWindowTitle("Settings")
        self.setModal(True)

        self.chosen_confirm_delete = cfg.get("confirm_delete", True)
        self.chosen_always_on_top = cfg.get("always_on_top", False)
        self.chosen_backup_min_minutes = cfg.get("backup_min_minutes", _DEFAULT_BACKUP_MIN_MINUTES)

        outer = QVBoxLayout(self)
        form = QFormLayout()

        self._confirm_delete = QCheckBox("Ask before deleting a training program")
        self._confirm_delete.setChecked(self.chosen_confirm_delete)
        form.addRow(self._confirm_delete)

        self._always_on_top = QCheckBox("Keep window on top")
        self._always_on_top.setChecked(self.chosen_always_on_top)
        self._always_on_top.toggled.connect(self._check_restart_needed)
        form.addRow(self._always_on_top)

        backups_on = self.chosen_backup_min_minutes is not None
        self._keep_backups = QCheckBox("Keep backups of the training program list")
        self._keep_backups.setChecked(backups_on)
        self._keep_backups.toggled.connect(self._on_keep_backups_toggled)
        form.addRow(self._keep_backups)

        self._backup_minutes = QSpinBox()
        self._backup_minutes.setRange(1, 24 * 60)
        self._backup_minutes.setSuffix(" min")
        self._backup_minutes.setValue(self.chosen_backup_min_minutes if backups_on else _DEFAULT_BACKUP_MIN_MINUTES)
        self._backup_minutes.setEnabled(backups_on)
        self._backup_minutes.valueChanged.connect(self._check_restart_needed)
        form.addRow("Minimum time between backups:", self._backup_minutes)
        outer.addLayout(form)

        # Bottom row: restart indicator + Apply
        btn_row = QHBoxLayout()
        self._restart_lbl = QLabel("* Restart required")
        self._restart_lbl.setFont(QFont("Calibri", 10))
        self._restart_lbl.setStyleSheet("color: #888888;")
        self._restart_lbl.setVisible(False)
        btn_row.addWidget(self._restart_lbl)
        btn_row.addStretch()
        apply_btn = QPushButton("Apply")
        apply_btn.clicked.connect(self._apply)
        btn_row.addWidget(apply_btn)
        outer.addLayout(btn_row)

        self._initial_always_on_top = self.chosen_always_on_top
        self._initial_backup_min_minutes = self.chosen_backup_min_minutes
        self.setWindowFlags(self.windowFlags() & ~Qt.WindowContextHelpButtonHint)

    def _backup_min_minutes(self):
        return self._backup_minutes.value() if self._keep_backups.isChecked() else None

    def _on_keep_backups_toggled(self, checked):
        self._backup_minutes.setEnabled(checked)
        self._check_restart_needed()

    def _check_restart_needed(self):
        self._restart_lbl.setVisible(
            self._always_on_top.isChecked() != self._initial_always_on_top
            or self._backup_min_minutes() != self._initial_backup_min_minutes)

    def _apply(self):
        self.chosen_confirm_delete = self._confirm_delete.isChecked()
        self.chosen_always_on_top = self._always_on_top.isChecked()
        self.chosen_backup_min_minutes = self._backup_min_minutes()
        self.accept()
