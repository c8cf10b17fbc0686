"""
Build orchestration for tasmocompiler.

This module runs one firmware build per request:
1. Normalize the repository layout
2. Check out the requested firmware version
3. Generate user_config_override.h and platformio_override.ini
4. Run the build tool inside the repository
5. Stream its output to the session's event sink in batches
6. Report exactly one terminal event

Session state machine::

    IDLE -> PREPARING -> PREPARE_FAILED
                      -> LAUNCHING -> LAUNCH_FAILED
                                   -> RUNNING -> EXITED

Only one build may run per repository at a time since all sessions write
the same generated files; a second concurrent request fails immediately.
"""

import logging
import os
import queue
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from ..config.request import BuildRequest
from ..config.settings import Settings
from ..errors import (
    BuildInProgress,
    DirectoryChangeFailed,
    SubprocessNonzeroExit,
    TasmoCompilerError,
)
from ..events import EventSink, FinishedEvent, SessionState
from ..repository.git import BranchSwitcher, GitBranchSwitcher
from ..repository.layout import normalize_layout
from .generator import ConfigFileGenerator
from .output_stream import OutputBuffer, PipeMerger, StreamDecoder
from .process_utils import kill_process_tree

# Lock management
_locks_lock = threading.Lock()  # Master lock for the lock dictionary
_repository_locks: Dict[str, threading.Lock] = {}

# Seconds between checks whether the build tool exited while waiting for output
POLL_INTERVAL = 0.1
# Seconds to keep reading after the build tool exited
EXIT_DRAIN_TIMEOUT = 5.0

_TRANSITIONS = {
    SessionState.IDLE: {SessionState.PREPARING},
    SessionState.PREPARING: {SessionState.PREPARE_FAILED, SessionState.LAUNCHING},
    SessionState.LAUNCHING: {SessionState.LAUNCH_FAILED, SessionState.RUNNING},
    SessionState.RUNNING: {SessionState.EXITED},
}


def get_repository_lock(repo_dir: Path) -> threading.Lock:
    """Get or create the lock guarding a repository checkout.

    Args:
        repo_dir: Repository root

    Returns:
        Threading lock for this repository
    """
    key = str(Path(repo_dir).resolve())
    with _locks_lock:
        if key not in _repository_locks:
            _repository_locks[key] = threading.Lock()
        return _repository_locks[key]


@dataclass
class BuildOutcome:
    """Result of a build session.

    Attributes:
        ok: Whether the build succeeded
        state: Terminal state the session ended in
        exit_code: Build tool exit code (None if it never ran)
        message: Failure text for sessions that ended before the build ran
    """

    ok: bool
    state: SessionState
    exit_code: Optional[int] = None
    message: str = ""

    def raise_for_status(self) -> None:
        """Raise if the session did not succeed.

        Raises:
            SubprocessNonzeroExit: If the build tool exited with nonzero code
            TasmoCompilerError: If the session failed before the build ran
        """
        if self.ok:
            return
        if self.state is SessionState.EXITED:
            raise SubprocessNonzeroExit(self.exit_code)
        raise TasmoCompilerError(self.message)


class SessionStateError(RuntimeError):
    """Raised on an illegal session state transition."""

    pass


class BuildSession:
    """Event emission and state of one build.

    The session is the only writer of its output buffer and the only caller
    of its sink; it refuses to emit a second terminal event.
    """

    def __init__(self, sink: EventSink, threshold: int = 5):
        """Initialize session.

        Args:
            sink: Event sink receiving messages and the terminal event
            threshold: Number of output chunks batched into one message
        """
        self.sink = sink
        self.buffer = OutputBuffer(threshold)
        self.state = SessionState.IDLE
        self.exit_code: Optional[int] = None
        self.failure: str = ""
        self._finished = False

    def transition(self, state: SessionState) -> None:
        if state not in _TRANSITIONS.get(self.state, set()):
            raise SessionStateError(f"Illegal session transition {self.state.value} -> {state.value}")
        logging.debug(f"Build session {self.state.value} -> {state.value}")
        self.state = state

    def feed(self, chunk: str) -> None:
        """Buffer a chunk of build output, flushing a full batch."""
        if self.buffer.append(chunk):
            self.sink.message(self.buffer.drain())

    def fail_prepare(self, error: BaseException) -> None:
        self.transition(SessionState.PREPARE_FAILED)
        self.failure = str(error)
        self.sink.message(self.failure)
        self._finish(FinishedEvent(ok=False))

    def fail_launch(self, error: DirectoryChangeFailed) -> None:
        self.transition(SessionState.LAUNCH_FAILED)
        self.failure = str(error)
        self.sink.message(self.failure)
        self._finish(FinishedEvent(ok=False, status=error.code, message=self.failure))

    def exit(self, exit_code: int) -> None:
        """Flush remaining output and report the build tool's exit."""
        self.transition(SessionState.EXITED)
        self.exit_code = exit_code

        self.sink.message(self.buffer.drain())

        message = f"Finished. Exit code: {exit_code}.\n"
        self.sink.message(message)
        logging.info(message.strip())
        self._finish(FinishedEvent(ok=exit_code == 0))

    def _finish(self, event: FinishedEvent) -> None:
        if self._finished:
            raise SessionStateError("Build session already finished")
        self._finished = True
        self.sink.finished(event)

    @property
    def outcome(self) -> BuildOutcome:
        return BuildOutcome(
            ok=self.state is SessionState.EXITED and self.exit_code == 0,
            state=self.state,
            exit_code=self.exit_code,
            message=self.failure,
        )


class BuildOrchestrator:
    """
    Orchestrates firmware builds for one repository checkout.

    Example usage:
        orchestrator = BuildOrchestrator(Settings.from_environment())
        outcome = orchestrator.compile(request, CallbackEventSink(socket.emit))
        if outcome.ok:
            print("Firmware ready")
    """

    def __init__(
        self,
        settings: Settings,
        branch_switcher: Optional[BranchSwitcher] = None,
        generator: Optional[ConfigFileGenerator] = None,
    ):
        """
        Initialize build orchestrator.

        Args:
            settings: Repository location and build command
            branch_switcher: Version checkout collaborator (default: git)
            generator: Generated file writer (default: for settings)
        """
        self.settings = settings
        self.branch_switcher = branch_switcher or GitBranchSwitcher(settings.repo_dir)
        self.generator = generator or ConfigFileGenerator(settings)

    def compile(self, request: BuildRequest, sink: EventSink) -> BuildOutcome:
        """
        Run a complete build session.

        Args:
            request: Build configuration
            sink: Receives the session's events

        Returns:
            BuildOutcome describing how the session ended
        """
        session = BuildSession(sink, self.settings.message_buffer_size)
        repo_dir = self.settings.repo_dir

        repository_lock = get_repository_lock(repo_dir)
        if not repository_lock.acquire(blocking=False):
            logging.warning(f"Repository {repo_dir} is already being built")
            session.transition(SessionState.PREPARING)
            session.fail_prepare(BuildInProgress(repo_dir))
            return session.outcome

        try:
            if not self.prepare(request, session):
                return session.outcome

            process = self.launch(repo_dir, session)
            if process is None:
                return session.outcome

            self.run(process, session)
            return session.outcome
        finally:
            repository_lock.release()

    def prepare(self, request: BuildRequest, session: BuildSession) -> bool:
        """
        Check out the requested version and generate the build inputs.

        Returns:
            True if the build can be launched; otherwise the session has
            already emitted its failure and terminal event
        """
        session.transition(SessionState.PREPARING)
        repo_dir = self.settings.repo_dir

        try:
            normalize_layout(repo_dir)

            version = request.version_identifier
            if version:
                self.branch_switcher.switch_to_branch(version)
                # An old checkout can bring the legacy directory back
                normalize_layout(repo_dir)
            else:
                logging.info("No version requested, building the current checkout")

            self.generator.generate(request)
        except TasmoCompilerError as e:
            logging.error(f"Preparing build failed: {e}")
            session.fail_prepare(e)
            return False
        except Exception as e:
            logging.error(f"Unexpected error preparing build: {e}", exc_info=True)
            session.fail_prepare(e)
            return False

        return True

    def launch(self, repo_dir: Path, session: BuildSession) -> Optional[subprocess.Popen]:
        """
        Start the build tool inside the repository.

        Returns:
            The running process, or None if it could not be started; the
            session has then already emitted its failure and terminal event
        """
        session.transition(SessionState.LAUNCHING)

        try:
            self._check_directory(repo_dir)
            logging.info(f"Running {' '.join(self.settings.build_command)} in {repo_dir}")
            try:
                process = subprocess.Popen(
                    self.settings.build_command,
                    cwd=str(repo_dir),
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except FileNotFoundError as e:
                raise DirectoryChangeFailed(repo_dir, f"command not found: {e.filename}", code=127) from e
            except OSError as e:
                raise DirectoryChangeFailed(repo_dir, str(e), code=126) from e
        except DirectoryChangeFailed as e:
            logging.error(str(e))
            session.fail_launch(e)
            return None

        session.transition(SessionState.RUNNING)
        return process

    def run(self, process: subprocess.Popen, session: BuildSession) -> int:
        """
        Stream the build tool's output until it exits.

        Output is read until both pipes are closed. A descendant that keeps
        them open after the build tool exited gets EXIT_DRAIN_TIMEOUT seconds,
        then the session reports the exit anyway.

        A KeyboardInterrupt terminates the build's process tree; the session
        still reports the exit before the interrupt is re-raised. Any other
        error while streaming (e.g. a listener that went away) terminates the
        process tree too and propagates without a terminal event.

        Returns:
            The build tool's exit code
        """
        merger = PipeMerger()
        merger.start(stdout=process.stdout, stderr=process.stderr)
        decoder = StreamDecoder()
        interrupted: Optional[KeyboardInterrupt] = None
        drain_deadline: Optional[float] = None
        streamed = False

        try:
            while True:
                try:
                    try:
                        chunk = merger.get(timeout=POLL_INTERVAL)
                    except queue.Empty:
                        if drain_deadline is None and process.poll() is not None:
                            drain_deadline = time.monotonic() + EXIT_DRAIN_TIMEOUT
                        if drain_deadline is not None and time.monotonic() > drain_deadline:
                            logging.warning("Build tool exited but its output pipes are still open")
                            break
                        continue
                except KeyboardInterrupt as ke:
                    if interrupted is None:
                        logging.warning("Build interrupted, stopping build tool")
                        interrupted = ke
                        kill_process_tree(process.pid)
                    continue
                if chunk is None:
                    break

                text = decoder.decode(chunk)
                if text:
                    logging.debug(text)
                    session.feed(text)

            tail = decoder.finish()
            if tail:
                session.feed(tail)
            streamed = True
        finally:
            if not streamed:
                logging.error("Streaming build output failed, stopping build tool")
                kill_process_tree(process.pid)
            exit_code = process.wait()
            merger.join(timeout=POLL_INTERVAL)
            # Closing a pipe a reader is blocked on would block as well
            if not merger.is_reading():
                for pipe in (process.stdout, process.stderr):
                    if pipe is not None:
                        pipe.close()

        session.exit(exit_code)

        if interrupted is not None:
            raise interrupted
        return exit_code

    def _check_directory(self, repo_dir: Path) -> None:
        """Make sure the build can run inside repo_dir.

        Raises:
            DirectoryChangeFailed: If the directory is missing or inaccessible
        """
        if not repo_dir.exists():
            raise DirectoryChangeFailed(repo_dir, "no such file or directory")
        if not repo_dir.is_dir():
            raise DirectoryChangeFailed(repo_dir, "not a directory")
        if not os.access(repo_dir, os.R_OK | os.X_OK):
            raise DirectoryChangeFailed(repo_dir, "permission denied")
