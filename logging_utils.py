"""
Phase Logging for the suggestion engine
=======================================

Provides colored, structured logging with phase tracking for the analysis
passes (word check, section diff, local pass, remote pass, reconcile).
IMPORTANT: No emojis in console output (Windows encoding issues).
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Optional

from colorama import Fore, Style, init

# Initialize colorama for Windows
init(autoreset=True)


class Phase:
    """Phase constants for the analysis pipeline"""
    WORD_CHECK = "WORD_CHECK"
    SECTION_DIFF = "SECTION_DIFF"
    LOCAL_PASS = "LOCAL_DICTIONARY_PASS"
    REMOTE_PASS = "REMOTE_SEMANTIC_PASS"
    RECONCILE = "RECONCILE"


PHASE_COLORS = {
    Phase.WORD_CHECK: Fore.CYAN,
    Phase.SECTION_DIFF: Fore.BLUE,
    Phase.LOCAL_PASS: Fore.GREEN,
    Phase.REMOTE_PASS: Fore.MAGENTA,
    Phase.RECONCILE: Fore.YELLOW,
}

# Text-based icons, no emojis
PHASE_ICONS = {
    Phase.WORD_CHECK: "[WRD]",
    Phase.SECTION_DIFF: "[SEC]",
    Phase.LOCAL_PASS: "[DIC]",
    Phase.REMOTE_PASS: "[SEM]",
    Phase.RECONCILE: "[REC]",
}


class TimingTracker:
    """Track timing for phases"""

    def __init__(self):
        self._timings: Dict[str, float] = {}
        self._start_times: Dict[str, float] = {}

    def start(self, key: str):
        self._start_times[key] = time.perf_counter()

    def end(self, key: str) -> float:
        """End timing and return elapsed seconds"""
        if key not in self._start_times:
            return 0.0
        elapsed = time.perf_counter() - self._start_times.pop(key)
        self._timings[key] = elapsed
        return elapsed

    def get(self, key: str) -> Optional[float]:
        return self._timings.get(key)

    def get_all(self) -> Dict[str, float]:
        return self._timings.copy()


class PhaseLogger:
    """
    Logger with phase tracking and visual formatting.

    Phase headers and footers are only printed when verbose; info/warning
    messages always go through, prefixed with the active phase icon.

    Usage:
        phase_logger = PhaseLogger(session_id="doc-42", verbose=True)

        with phase_logger.phase(Phase.REMOTE_PASS, sub_label="3 sections"):
            phase_logger.info("Requesting semantic analysis...")
    """

    def __init__(
        self,
        session_id: str,
        verbose: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.session_id = session_id
        self.verbose = verbose
        self.logger = logger or logging.getLogger(__name__)
        self.timing_tracker = TimingTracker()
        self._current_phase: Optional[str] = None
        self._phase_stack = []

    @property
    def current_phase(self) -> Optional[str]:
        return self._current_phase

    @contextmanager
    def phase(self, phase_name: str, sub_label: Optional[str] = None):
        """Context manager for phase tracking with automatic timing"""
        self._phase_stack.append(self._current_phase)
        self._current_phase = phase_name
        timing_key = f"phase_{phase_name}_{len(self._phase_stack)}"
        self.timing_tracker.start(timing_key)
        self._print_phase_header(phase_name, sub_label)
        try:
            yield self
        finally:
            elapsed = self.timing_tracker.end(timing_key)
            self._print_phase_footer(phase_name, elapsed)
            self._current_phase = self._phase_stack.pop() if self._phase_stack else None

    def _print_phase_header(self, phase_name: str, sub_label: Optional[str] = None):
        if not self.verbose:
            return
        color = PHASE_COLORS.get(phase_name, Fore.WHITE)
        icon = PHASE_ICONS.get(phase_name, "[???]")
        timestamp = datetime.now().strftime("%H:%M:%S")
        sub_str = f" - {sub_label}" if sub_label else ""
        self.logger.info(
            f"{color}{icon} {phase_name}{sub_str} [{self.session_id}] [{timestamp}]{Style.RESET_ALL}"
        )

    def _print_phase_footer(self, phase_name: str, elapsed: float):
        if not self.verbose:
            return
        color = PHASE_COLORS.get(phase_name, Fore.WHITE)
        icon = PHASE_ICONS.get(phase_name, "[???]")
        elapsed_str = f"{elapsed * 1000:.1f}ms" if elapsed > 0 else "N/A"
        self.logger.info(f"{color}{icon} {phase_name} COMPLETED ({elapsed_str}){Style.RESET_ALL}")

    def info(self, message: str):
        """Log info message with current phase context"""
        if self._current_phase:
            color = PHASE_COLORS.get(self._current_phase, Fore.WHITE)
            icon = PHASE_ICONS.get(self._current_phase, "[???]")
            self.logger.info(f"{color}{icon}{Style.RESET_ALL} {message}")
        else:
            self.logger.info(message)

    def debug(self, message: str):
        """Log debug message (only if verbose)"""
        if self.verbose:
            self.logger.debug(f"{Fore.WHITE}{Style.DIM}{message}{Style.RESET_ALL}")

    def warning(self, message: str):
        self.logger.warning(f"{Fore.YELLOW}[WARN] {message}{Style.RESET_ALL}")

    def error(self, message: str):
        self.logger.error(f"{Fore.RED}{Style.BRIGHT}[ERROR] {message}{Style.RESET_ALL}")

    def log_merge_result(self, source: str, incoming: int, live: int):
        """Summarize one merge: how many came in and the size of the live set."""
        if not self.verbose:
            return
        self.info(f"{Fore.GREEN}{source}: {incoming} incoming, {live} live{Style.RESET_ALL}")


def create_phase_logger(session_id: str, verbose: bool = False) -> PhaseLogger:
    """Create a new PhaseLogger instance"""
    return PhaseLogger(session_id=session_id, verbose=verbose)
