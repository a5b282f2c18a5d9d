import os
import threading
import signal
import time
import random
import logging

from fastapi import FastAPI
import uvicorn

from .main import run_bot
from .stats import Stats
from .utils import human_time

logger = logging.getLogger(__name__)

app = FastAPI(title="OpenBook Bot", version="1.0.0")

_shutdown = threading.Event()
_bot_started = threading.Event()
_stats = Stats()

@app.get("/health")
def health():
    return {
        "status": "ok",
        "bot_started": _bot_started.is_set(),
        "shutdown": _shutdown.is_set(),
        "uptime": human_time(time.time() - _stats.started_at),
        **_stats.as_dict(),
    }

@app.get("/")
def root():
    return {"service": "ob-bot", "message": "running", "ts": int(time.time())}


def _bot_wrapper():
    _bot_started.set()
    base = 5
    cap = 60
    while not _shutdown.is_set():
        try:
            run_bot(stats=_stats, stop_flag=_shutdown, install_signals=False)
        except SystemExit as e:
            logger.error("[bot] SystemExit: %s", e)
        except Exception as e:
            logger.exception("[bot] crashed: %s", e)
        else:
            if _shutdown.is_set():
                break
            logger.warning("[bot] exited cleanly")
        backoff = min(cap, base) + random.uniform(0, 1.5)
        logger.info("[bot] restart in %.1fs", backoff)
        _shutdown.wait(backoff)
        base = min(cap, base * 2)

def _handle_sigterm(*_args):
    logger.info("[server] SIGTERM received -> shutting down")
    _shutdown.set()

def main():
    t = threading.Thread(target=_bot_wrapper, daemon=True)
    t.start()

    signal.signal(signal.SIGTERM, _handle_sigterm)
    signal.signal(signal.SIGINT, _handle_sigterm)

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
    )
    _shutdown.set()
    t.join(timeout=5)

if __name__ == "__main__":
    main()
