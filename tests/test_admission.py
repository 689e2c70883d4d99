import threading
import time

from pantry.crawler.admission import AdmissionRegistry, DomainAdmission


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def test_consecutive_starts_are_spaced():
    clock = FakeClock()
    admission = DomainAdmission(
        "example.com",
        max_in_flight=2,
        min_interval_seconds=1.0,
        clock=clock.time,
        sleep=clock.sleep,
    )

    for _ in range(3):
        with admission.admit():
            pass

    assert clock.sleeps == [1.0, 1.0]

    clock.now += 5.0
    with admission.admit():
        pass
    assert clock.sleeps == [1.0, 1.0]
    assert admission.snapshot()["admitted"] == 4


def test_in_flight_never_exceeds_cap():
    admission = DomainAdmission("example.com", max_in_flight=2, min_interval_seconds=0.0)
    release = threading.Event()

    def hold():
        with admission.admit():
            release.wait(timeout=5.0)

    threads = [threading.Thread(target=hold) for _ in range(6)]
    for thread in threads:
        thread.start()

    deadline = time.monotonic() + 5.0
    while admission.in_flight < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    time.sleep(0.05)
    assert admission.in_flight == 2

    release.set()
    for thread in threads:
        thread.join(timeout=5.0)

    snapshot = admission.snapshot()
    assert snapshot == {"in_flight": 0, "peak_in_flight": 2, "admitted": 6}


def test_registry_shares_state_per_host():
    registry = AdmissionRegistry(max_in_flight=1, min_interval_seconds=0.0)

    first = registry.for_url("https://www.example.com/a")
    second = registry.for_url("https://example.com/b")
    other = registry.for_url("https://other.org/")

    assert first is second
    assert first is not other
    assert registry.hosts() == ["example.com", "other.org"]

    with registry.admit("https://example.com/c"):
        assert registry.snapshot()["example.com"]["in_flight"] == 1
    assert registry.snapshot()["example.com"]["in_flight"] == 0
