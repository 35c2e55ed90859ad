import gzip
import logging
import os
import shutil
import time
from logging.handlers import TimedRotatingFileHandler

from fastapi import Request

import config

LOGGER_NAME = "attendance"
BODY_LOG_LIMIT = 200  # Registration bodies carry base64 images


def _compress_rotated(log_file):
    log_dir = os.path.dirname(log_file) or "."
    base = os.path.basename(log_file)
    for file in os.listdir(log_dir):
        if file.startswith(base) and file != base and not file.endswith(".gz"):
            source_path = os.path.join(log_dir, file)
            if os.path.isfile(source_path):
                with open(source_path, "rb") as f_in, gzip.open(f"{source_path}.gz", "wb") as f_out:
                    shutil.copyfileobj(f_in, f_out)
                os.remove(source_path)


def _file_handler(log_file, max_size, backup_count):
    """
    Weekly rotating handler (Monday at midnight) that also rolls over once
    the file reaches `max_size` bytes. Rotated files are gzip-compressed.
    """
    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    handler = TimedRotatingFileHandler(
        log_file,
        when="W0",
        backupCount=backup_count,
        encoding="utf-8"
    )

    old_emit = handler.emit
    def emit_with_size_check(record):
        if os.path.exists(log_file) and os.path.getsize(log_file) >= max_size:
            handler.doRollover()
        old_emit(record)

    old_do_rollover = handler.doRollover
    def rollover_and_compress():
        old_do_rollover()
        _compress_rotated(log_file)

    handler.emit = emit_with_size_check
    handler.doRollover = rollover_and_compress
    return handler


def setup_logger(log_file=None, level=None):
    """
    Configure the `attendance` logger tree. Always logs to the console;
    also logs to a rotating file unless `log_file` is empty.
    """
    log_file = config.LOG_FILE if log_file is None else log_file
    level = level or config.LOG_LEVEL

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if logger.handlers:
        return logger

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        handler = _file_handler(log_file, config.LOG_MAX_SIZE, config.LOG_BACKUP_COUNT)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def create_logging_middleware(app, logger):
    """
    Adds a middleware to log request & response time, IP, and request body.
    """
    @app.middleware("http")
    async def log_request_response_time(request: Request, call_next):
        start_time = time.perf_counter()
        client_ip = request.client.host if request.client else "-"

        try:
            body_bytes = await request.body()
            request_body = body_bytes[:BODY_LOG_LIMIT].decode("utf-8", errors="replace")
        except Exception:
            request_body = "<Failed to read body>"

        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        logger.info(
            "IP=%s | %s %s | Status=%s | Time=%.4fs | RequestBody=%s",
            client_ip, request.method, request.url.path,
            response.status_code, process_time, request_body
        )
        response.headers["X-Process-Time"] = str(round(process_time, 4))
        return response

    return app
