"""Shared fakes and helpers for the test suite"""

import threading
import time

import numpy as np

from tower_farmer.modules.vision import TemplateMatch


def wait_until(predicate, timeout=3.0, interval=0.005):
    """Poll predicate until it is true; returns its final value"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


class ThreadResult:
    """Runs a callable in a thread and keeps its return value or exception"""

    def __init__(self, target, *args):
        self.value = None
        self.error = None
        self._thread = threading.Thread(target=self._run, args=(target,) + args, daemon=True)
        self._thread.start()

    def _run(self, target, *args):
        try:
            self.value = target(*args)
        except BaseException as e:
            self.error = e

    def join(self, timeout=3.0):
        self._thread.join(timeout)
        return not self._thread.is_alive()


def blank_frame(h=100, w=100):
    return np.zeros((h, w, 3), dtype=np.uint8)


class FakeADB:
    """Records taps and hands out blank frames"""

    def __init__(self, device_id="emulator-5554"):
        self.device_id = device_id
        self.taps = []
        self._lock = threading.Lock()

    def take_screenshot(self, token=None):
        if token is not None:
            token.raise_if_cancelled()
        return blank_frame()

    def tap(self, x, y, token=None):
        if token is not None:
            token.raise_if_cancelled()
        with self._lock:
            self.taps.append((x, y))

    def tap_log(self):
        with self._lock:
            return list(self.taps)


class FakeVision:
    """Answers template queries from a fixed table of template -> point"""

    def __init__(self, visible=None, color_point=None, panels=None):
        self.visible = dict(visible or {})
        self.color_point = color_point
        self.panels = list(panels or [])
        self.queries = []

    def find_template(self, frame, template, threshold=None, center=True):
        self.queries.append(template)
        point = self.visible.get(template)
        if point is None:
            return None
        return TemplateMatch(point[0], point[1], 1.0)

    def detect_by_color(self, frame, origin, orbit_radius):
        return self.color_point

    def detect_upgrades(self, frame):
        return list(self.panels)
