from PySide6.QtWidgets import QFileDialog
from rtt.core.controller import FilePicker


# Turns ("json",) into "JSON files (*.json)" for QFileDialog.
def build_name_filter(extensions):
    patterns = " ".join(f"*.{ext}" for ext in extensions)
    label = "/".join(ext.upper() for ext in extensions)
    return f"{label} files ({patterns})"


# QFileDialog-backed file picker. Remembers the last folder used in the settings dict, so the next dialog opens there.
class QtFilePicker(FilePicker):

    def __init__(self, settings, parent=None):
        self.settings = settings
        self.parent = parent

    def get_open_file_path(self, extensions):
        path, _ = QFileDialog.getOpenFileName(
            self.parent, "Open", self.settings.get("last_directory", ""), build_name_filter(extensions))
        return self._remember(path)

    def get_save_file_path(self, extensions):
        path, _ = QFileDialog.getSaveFileName(
            self.parent, "Save As", self.settings.get("last_directory", ""), build_name_filter(extensions))
        if path and "." not in path.rsplit("/", 1)[-1]:
            path = f"{path}.{extensions[0]}"
        return self._remember(path)

    def _remember(self, path):
        if not path:
            return None
        self.settings["last_directory"] = path.rsplit("/", 1)[0]
        return path
