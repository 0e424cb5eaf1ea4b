import time


# Samples a monotonic seconds source (time.monotonic unless told otherwise) as whole milliseconds. The last sample
# is cached in now_ms, and samples never go backwards even if the source does.
class ClockSampler:

    def __init__(self, source=time.monotonic):
        self._source = source
        self.now_ms = self._read()

    def _read(self):
        # round, not int: 5.0 s read back as 4999.9999 ms must still count as 5000
        return round(self._source() * 1000)

    def sample(self):
        self.now_ms = max(self.now_ms, self._read())
        return self.now_ms
