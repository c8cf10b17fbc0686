"""Process tree helpers for the build tool.

``pio run`` spawns compilers and linkers as grandchildren. Stopping only the
direct child would leave them running, so the whole tree is terminated.
"""

import logging
from typing import List

import psutil


def kill_process_tree(root_pid: int, timeout: float = 3) -> int:
    """Terminate a process and all of its descendants.

    Children are terminated before their parents. Processes still alive
    after ``timeout`` seconds are killed.

    Args:
        root_pid: PID of the root process
        timeout: Grace period for termination in seconds

    Returns:
        Number of processes that were signalled
    """
    try:
        root_proc = psutil.Process(root_pid)
        children = root_proc.children(recursive=True)
    except psutil.NoSuchProcess:
        return 0

    processes: List[psutil.Process] = list(reversed(children)) + [root_proc]
    signalled = 0

    for proc in processes:
        try:
            proc.terminate()
            signalled += 1
            logging.debug(f"Terminated process {proc.pid}")
        except psutil.NoSuchProcess:
            pass  # Already dead
        except psutil.Error as e:
            logging.warning(f"Failed to terminate process {proc.pid}: {e}")

    _gone, alive = psutil.wait_procs(processes, timeout=timeout)

    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass
        except psutil.Error as e:
            logging.warning(f"Failed to force kill process {proc.pid}: {e}")

    return signalled
