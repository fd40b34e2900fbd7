"""The training program list controller.

``TrainingProgramListControl`` is the only thing allowed to change the list.
Every change is followed by the same steps: check that the order and the
program mapping still line up, hand a fresh snapshot to every registered
receiver (in registration order), then store it through the repository.
Restoring from storage skips the store, since the data just came from there.
"""

import copy
import uuid
from rtt.core.errors import InternalConsistencyFault, TrainingProgramNotFound
from rtt.core.model import ProgramRecord, TrainingProgramListData
from rtt.core.serialization import read_program_file, write_program_file

JSON_EXTENSIONS = ("json",)


class TrainingProgramListReceiver:
    """Anything that wants the latest list, e.g. a display.

    Called synchronously from inside every list change, so it has to return
    quickly and must not call back into the controller.
    """

    def receive_snapshot(self, data: TrainingProgramListData) -> None:
        raise NotImplementedError


class FilePicker:
    """Asks the user for a file. Both methods return None when cancelled."""

    def get_open_file_path(self, extensions):
        raise NotImplementedError

    def get_save_file_path(self, extensions):
        raise NotImplementedError


class TrainingProgramListControl:

    def __init__(self, repository, logger, file_picker=None):
        self._repository = repository
        self._log = logger
        self._file_picker = file_picker

        self._programs: dict[str, ProgramRecord] = {}
        self._order: list[str] = []
        self._workshop_folder_location = ""
        self._receivers = []

    # ------------------------------------------------------------------ #
    #  Receivers                                                           #
    # ------------------------------------------------------------------ #

    def register_receiver(self, receiver):
        self._receivers.append(receiver)

    # ------------------------------------------------------------------ #
    #  List changes                                                        #
    # ------------------------------------------------------------------ #

    def add_program(self):
        program = ProgramRecord(id=self._generate_id())
        self._programs[program.id] = program
        self._order.append(program.id)
        self._log.info(f"Added training program with uuid {program.id}")

        self._notify()
        return program.id

    def remove_program(self, program_id):
        self._ensure_id_is_known(program_id, "training program ID")

        try:
            self._order.remove(program_id)
        except ValueError:
            # The id passed the check above, so the order and the mapping have drifted apart.
            raise InternalConsistencyFault("Training program list is inconsistent") from None
        del self._programs[program_id]
        self._log.info(f"Removed training program with uuid {program_id}")

        self._notify()

    def swap_programs(self, first_program_id, second_program_id):
        self._ensure_id_is_known(first_program_id, "first training program ID")
        self._ensure_id_is_known(second_program_id, "second training program ID")

        try:
            first_index = self._order.index(first_program_id)
            second_index = self._order.index(second_program_id)
        except ValueError:
            # Both ids passed the check above, so this means the order and the mapping have drifted apart.
            raise InternalConsistencyFault("Training program list is inconsistent") from None
        self._order[first_index], self._order[second_index] = self._order[second_index], self._order[first_index]

        self._notify()

    # Upsert by id. Known programs keep their place in the order, new ones go to the front.
    def inject_program(self, program):
        program = program.copy()
        if program.id in self._programs:
            self._log.info(f"Replacing existing training program with uuid {program.id}")
        else:
            self._log.info(f"Injecting new training program with uuid {program.id}")
            self._order.insert(0, program.id)
        self._programs[program.id] = program

        self._notify()
        self._log.info("Successfully injected/updated training program")

    def rename_program(self, program_id, new_name):
        self._ensure_id_is_known(program_id, "training program ID")
        self._programs[program_id].name = new_name
        self._notify()

    # Not checked for existence here, whoever uses the folder deals with that.
    def change_workshop_folder_location(self, new_location):
        self._workshop_folder_location = new_location
        self._notify()

    # ------------------------------------------------------------------ #
    #  Read access                                                         #
    # ------------------------------------------------------------------ #

    def get_list_snapshot(self):
        return TrainingProgramListData(
            order=tuple(self._order),
            programs=copy.deepcopy(self._programs),
            workshop_folder_location=self._workshop_folder_location,
        )

    def get_program(self, program_id):
        self._ensure_id_is_known(program_id, "training program ID")
        return self._programs[program_id].copy()

    # ------------------------------------------------------------------ #
    #  Storage                                                             #
    # ------------------------------------------------------------------ #

    # Replaces everything with what the repository holds (its default location if path is empty). Live state is only
    # touched once the read succeeded, so a failed restore leaves the list exactly as it was.
    def restore_from_storage(self, path=None):
        result = self._repository.restore(path) if path else self._repository.restore()
        if not result.ok:
            self._log.warning(f"Could not restore training programs ({result.kind} error): {result.message}")
            return result

        data = result.value
        self._check_consistency(data.order, data.programs)

        self._order = list(data.order)
        self._programs = {program_id: program.copy() for program_id, program in data.programs.items()}
        self._workshop_folder_location = data.workshop_folder_location
        self._log.info(f"Restored {len(self._order)} training programs")

        # Notify receivers, but don't write back what was just read.
        self._notify(currently_restoring=True)
        return result

    def store_to_storage(self, path=None):
        if path:
            self._repository.store(self.get_list_snapshot(), path)
        else:
            self._repository.store(self.get_list_snapshot())

    # Reads a single program file and injects it. Anything wrong with the file is logged and the import is dropped
    # without touching the list.
    def import_program(self, path):
        self._log.info(f"Importing training program from '{path}'..")
        result = read_program_file(path)
        if not result.ok:
            self._log.warning(f"Aborted training program import from '{path}' ({result.kind} error): {result.message}")
            return result
        self.inject_program(result.value)
        return result

    def export_program(self, program_id, path):
        program = self.get_program(program_id)
        write_program_file(program, path)

    # ------------------------------------------------------------------ #
    #  File picker driven variants                                         #
    # ------------------------------------------------------------------ #

    def load_training_programs(self):
        self._log.info("Load Training programs..")
        path = self._pick(open_file=True)
        if not path:
            return None
        return self.restore_from_storage(path)

    def save_training_programs(self):
        self._log.info("Save Training programs..")
        path = self._pick(open_file=False)
        if not path:
            return None
        self.store_to_storage(path)
        return path

    def load_training_program(self):
        self._log.info("Load Training program..")
        path = self._pick(open_file=True)
        if not path:
            return None
        return self.import_program(path)

    def save_training_program(self, program_id):
        self._log.info(f"Save Training program {program_id}..")
        self._ensure_id_is_known(program_id, "training program ID")
        path = self._pick(open_file=False)
        if not path:
            return None
        self.export_program(program_id, path)
        return path

    def _pick(self, open_file):
        if self._file_picker is None:
            raise RuntimeError("No file picker was given to the training program list control")
        if open_file:
            path = self._file_picker.get_open_file_path(JSON_EXTENSIONS)
        else:
            path = self._file_picker.get_save_file_path(JSON_EXTENSIONS)
        if not path:
            self._log.info("File selection cancelled")
        return path

    # ------------------------------------------------------------------ #
    #  Internals                                                           #
    # ------------------------------------------------------------------ #

    def _notify(self, currently_restoring=False):
        self._check_consistency(self._order, self._programs)

        # Everybody gets their own copy, so nobody can mess with anybody else's (or our) data.
        for receiver in self._receivers:
            receiver.receive_snapshot(self.get_list_snapshot())

        if not currently_restoring:
            self._repository.store(self.get_list_snapshot())

    @staticmethod
    def _check_consistency(order, programs):
        if len(order) != len(set(order)) or set(order) != set(programs):
            raise InternalConsistencyFault(
                f"Training program order {list(order)} doesn't match the known programs {sorted(programs)}")

    def _generate_id(self):
        while True:
            program_id = str(uuid.uuid4())
            if program_id not in self._programs:
                return program_id

    def _ensure_id_is_known(self, program_id, parameter_name):
        if program_id not in self._programs:
            raise TrainingProgramNotFound(program_id, parameter_name)
