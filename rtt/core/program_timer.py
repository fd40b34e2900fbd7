import time
from rtt.common.logger import log

# This object runs through the entries of one training program. It uses monotonic seconds for accuracy (clock change
# immunity), and works out which entry is active purely from the total time elapsed, so stopping/starting never
# loses track of the position.
class ProgramTimer:

    def __init__(self, program):
        self.program = program
        self.elapsed = 0.0
        self.running = False
        self._mono = None
        log.debug(f"Initialized program timer for '{program.name}' ({len(program.entries)} entries)")

    # Returns how many seconds of the program have passed.
    @property
    def current_elapsed(self):
        if self.running and self._mono is not None:
            return self.elapsed + (time.monotonic() - self._mono)
        return self.elapsed

    @property
    def elapsed_ms(self):
        return round(self.current_elapsed * 1000)

    # Index of the entry that is currently being played, or None once every entry has run out.
    @property
    def current_entry_index(self):
        elapsed_ms = self.elapsed_ms
        for index, entry in enumerate(self.program.entries):
            if elapsed_ms < entry.duration:
                return index
            elapsed_ms -= entry.duration
        return None

    @property
    def current_entry(self):
        index = self.current_entry_index
        return None if index is None else self.program.entries[index]

    # Milliseconds left on the current entry, 0 when finished.
    @property
    def remaining_in_entry_ms(self):
        index = self.current_entry_index
        if index is None:
            return 0
        return self._entry_end_ms(index) - self.elapsed_ms

    @property
    def finished(self):
        return self.current_entry_index is None

    # Start and stop methods for the timer.
    def start(self):
        if not self.running and not self.finished:
            self.running = True
            self._mono = time.monotonic()
            log.debug(f"Started program timer '{self.program.name}' at mono {self._mono}")
    def stop(self):
        if self.running:
            self.freeze()
            self.running = False
            self._mono = None
            log.debug(f"Stopped program timer '{self.program.name}' at {self.elapsed:.3f}s")
    def reset(self):
        self.running = False
        self._mono = None
        self.elapsed = 0.0
        log.debug(f"Reset program timer '{self.program.name}' to 0.0")

    # "Freezes" the timer's running time from internal _mono into elapsed, without actually stopping the timer.
    def freeze(self):
        if self.running and self._mono is not None:
            now = time.monotonic()
            self.elapsed += now - self._mono
            self._mono = now

    # Jumps straight to the start of the next entry. Skipping the last entry finishes the program.
    def skip_entry(self):
        index = self.current_entry_index
        if index is None:
            return
        self.freeze()
        self.elapsed = self._entry_end_ms(index) / 1000
        log.debug(f"Skipped entry {index} of program timer '{self.program.name}'")
        if self.finished:
            self.stop()

    def _entry_end_ms(self, index):
        return sum(entry.duration for entry in self.program.entries[:index + 1])
