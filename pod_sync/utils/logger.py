# pod_sync/utils/logger.py
import os, sys, time

LEVELS = {"ERROR": 40, "WARN": 30, "INFO": 20, "DEBUG": 10, "NONE": 100}
ALIASES = {"WARNING": "WARN", "CRITICAL": "ERROR", "OFF": "NONE"}

def _resolve(name: str | None) -> int:
    key = (name or "INFO").strip().upper()
    return LEVELS.get(ALIASES.get(key, key), LEVELS["INFO"])

LOG_LEVEL = _resolve(os.getenv("LOG_LEVEL"))

def set_level(name: str | None):
    global LOG_LEVEL
    LOG_LEVEL = _resolve(name)

def enabled(level: str) -> bool:
    return LEVELS[level] >= LOG_LEVEL

def _ts():
    # UTC, same clock as the notes we stamp on orders
    return time.strftime("%Y-%m-%d %H:%M:%S", time.gmtime())

def log(level: str, msg: str):
    if enabled(level):
        stream = sys.stderr if LEVELS[level] >= LEVELS["ERROR"] else sys.stdout
        print(f"[{_ts()}][{level}] {msg}", file=stream, flush=True)

def debug(msg): log("DEBUG", msg)
def info(msg):  log("INFO", msg)
def warn(msg):  log("WARN", msg)
def error(msg): log("ERROR", msg)
