from __future__ import annotations
import logging
from logging.handlers import RotatingFileHandler
import os, functools, time
from pathlib import Path

_DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
_MAX_BYTES = int(os.getenv("LOG_MAX_BYTES", "1048576"))
_BACKUP_COUNT = int(os.getenv("LOG_BACKUP_COUNT", "3"))

_CONSOLE_FMT = "%(asctime)s | %(levelname)s | %(context)s | %(name)s | %(message)s"
_FILE_FMT = "%(asctime)s | %(levelname)s | %(context)s | %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"


class _ContextFilter(logging.Filter):
    """Añade el par operado (record.context) a cada línea."""
    def __init__(self) -> None:
        super().__init__()
        self.context = "-"

    def filter(self, record: logging.LogRecord) -> bool:
        record.context = self.context
        return True


class _LoggerManager:
    """
    Configura el logger raíz una sola vez (consola) y añade un fichero
    rotativo por módulo dentro de LOG_DIR (trader.log, orchestrators_x.log...).
    """
    def __init__(self) -> None:
        self._configured = False
        self._module_handlers: dict[str, logging.Handler] = {}
        self._log_dir = os.getenv("LOG_DIR", "./logs")
        self._context = _ContextFilter()

    def set_context(self, context: str) -> None:
        self._context.context = context

    @property
    def level(self) -> int:
        return getattr(logging, _DEFAULT_LEVEL, logging.INFO)

    def _ensure(self) -> None:
        if self._configured:
            return

        root = logging.getLogger()
        root.setLevel(self.level)
        if not any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
                   for h in root.handlers):
            sh = logging.StreamHandler()
            sh.setLevel(self.level)
            sh.setFormatter(logging.Formatter(fmt=_CONSOLE_FMT, datefmt=_DATE_FMT))
            sh.addFilter(self._context)
            root.addHandler(sh)

        # ccxt y httpx son muy verbosos en DEBUG
        for noisy in ("ccxt", "httpx", "telegram", "urllib3"):
            logging.getLogger(noisy).setLevel(max(self.level, logging.INFO))

        try:
            Path(self._log_dir).mkdir(parents=True, exist_ok=True)
        except OSError:
            self._log_dir = ""
        self._configured = True

    def setup_logger(self, name: str) -> logging.Logger:
        self._ensure()
        logger = logging.getLogger(name)

        if self._log_dir and name not in self._module_handlers:
            safe_name = name.replace(".", "_").replace("/", "_")
            file_path = os.path.join(self._log_dir, f"{safe_name}.log")
            try:
                fh = RotatingFileHandler(file_path, maxBytes=_MAX_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8")
                fh.setLevel(self.level)
                fh.setFormatter(logging.Formatter(fmt=_FILE_FMT, datefmt=_DATE_FMT))
                fh.addFilter(self._context)
                self._module_handlers[name] = fh
                logger.addHandler(fh)
                logger.propagate = True  # conserva salida a consola
            except OSError as e:
                logging.getLogger(__name__).warning(f"No se pudo crear {file_path}: {e}")

        return logger


logger_manager = _LoggerManager()


def log_function(func):
    """Traza entrada/salida (DEBUG) y registra la excepción antes de propagarla."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logger_manager.setup_logger(func.__module__)
        logger.debug(f"→ {func.__qualname__} args={args} kwargs={kwargs}")
        t0 = time.time()
        try:
            result = func(*args, **kwargs)
            logger.debug(f"← {func.__qualname__} ({(time.time()-t0)*1000:.1f} ms)")
            return result
        except Exception as e:
            logger.exception(f"✗ {func.__qualname__}: {e}")
            raise
    return wrapper
