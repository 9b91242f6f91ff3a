# pod_sync/services/scheduler.py
import threading

from ..utils.logger import error


def _guarded(fn, *args):
    try:
        fn(*args)
    except Exception as e:
        error(f"[scheduler] background job {getattr(fn, '__name__', fn)} failed: {e}")


class ThreadingScheduler:
    """Fire-and-forget execution on daemon threads.

    `call_later` uses a Timer so webhook handlers can return their 200
    straight away. Nothing can be cancelled once scheduled; a pending
    timer dies only with the process.
    """

    def call_later(self, delay: float, fn, *args) -> threading.Timer:
        t = threading.Timer(max(0.0, float(delay)), _guarded, args=(fn, *args))
        t.daemon = True
        t.start()
        return t

    def spawn(self, fn, *args) -> threading.Thread:
        t = threading.Thread(target=_guarded, args=(fn, *args), daemon=True)
        t.start()
        return t
