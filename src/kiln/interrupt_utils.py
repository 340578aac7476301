"""Utilities for handling KeyboardInterrupt while child processes are running.

A compiler or linker started by kiln may itself spawn children (the clang
driver runs cc1, the linker driver runs ld). When the user interrupts a build,
the whole tree has to go, otherwise orphaned compilers keep writing into the
build directory after kiln has exited.
"""

import _thread
import logging
from typing import List, Optional

import psutil


def terminate_process_tree(pid: int, timeout: float = 3.0) -> int:
    """Terminate a process and all of its descendants.

    Children are terminated before their parents. Processes still alive after
    `timeout` seconds are killed.

    Args:
        pid: PID of the root process
        timeout: Seconds to wait for graceful termination

    Returns:
        Number of processes signalled
    """
    try:
        root = psutil.Process(pid)
    except psutil.NoSuchProcess:
        return 0

    try:
        processes: List[psutil.Process] = root.children(recursive=True)
    except psutil.NoSuchProcess:
        processes = []
    processes = list(reversed(processes)) + [root]

    signalled: List[psutil.Process] = []
    for proc in processes:
        try:
            proc.terminate()
            signalled.append(proc)
        except psutil.NoSuchProcess:
            pass  # Already dead
        except psutil.AccessDenied as e:
            logging.warning(f"Failed to terminate process {proc.pid}: {e}")

    _gone, alive = psutil.wait_procs(signalled, timeout=timeout)
    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed stubborn process {proc.pid}")
        except psutil.NoSuchProcess:
            pass

    return len(signalled)


def handle_keyboard_interrupt_properly(
    ke: KeyboardInterrupt,
    child_pid: Optional[int] = None
) -> None:
    """Clean up after a KeyboardInterrupt and propagate it to the main thread.

    Usage:
        try:
            proc.wait()
        except KeyboardInterrupt as ke:
            handle_keyboard_interrupt_properly(ke, proc.pid)

    Args:
        ke: The KeyboardInterrupt exception to handle
        child_pid: Root of a child process tree to terminate first

    Raises:
        KeyboardInterrupt: Always re-raises the exception after handling
    """
    if child_pid is not None:
        count = terminate_process_tree(child_pid)
        logging.info(f"Interrupted, terminated {count} child process(es)")
    _thread.interrupt_main()
    raise ke
