"""Wires input proxies, commands, the thread pool and plugin watching together."""

from __future__ import annotations

import os
from typing import Any, Callable, Iterable, Optional, Union

from iotdrive.async_injection import AsyncInjection
from iotdrive.dir_monitor import DirMonitor
from iotdrive.dispatcher import Callback
from iotdrive.factory import Factory
from iotdrive.interfaces import Command, FdMode, InputProxy, TaskArgs
from iotdrive.logger import Logger, Severity
from iotdrive.reactor import Reactor
from iotdrive.registry import get_instance
from iotdrive.scheduler import Scheduler
from iotdrive.threadpool import ThreadPool, ThreadPoolTask

ReactEntry = tuple[tuple[int, FdMode], InputProxy]
FactoryEntry = tuple[int, Callable[[], Command]]
PluginHandler = Callable[[str], Any]


def _shared_command_factory() -> Factory:
    return get_instance(Factory[int, Command])


class FrameworkTask(ThreadPoolTask):
    """Builds the command for some task arguments and runs it.

    A follow-up check returned by the command is handed to an
    AsyncInjection on ``scheduler`` (the shared Scheduler by default).
    """

    def __init__(
        self,
        task_args: TaskArgs,
        factory: Optional[Factory] = None,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._task_args = task_args
        self._factory = factory
        self._scheduler = scheduler
        self._logger = logger

    def run(self) -> None:
        factory = self._factory if self._factory is not None else _shared_command_factory()
        try:
            command = factory.create(self._task_args.key())
        except Exception:
            logger = self._logger if self._logger is not None else get_instance(Logger)
            logger.log("Got invalid key in FrameworkTask.run()", Severity.ERROR)
            raise
        follow_up = command.run(self._task_args)
        if follow_up is not None:
            check, interval = follow_up
            AsyncInjection(check, interval, self._scheduler)


class Framework:
    """Runs commands for the input arriving on registered descriptors.

    Each ``react_list`` entry ties a descriptor and mode to an input proxy;
    each ``factory_list`` entry registers a command creator under a key.
    When ``plugins_dir`` is not None the directory is watched and the
    plugin handlers receive the paths of written and deleted files.
    """

    def __init__(
        self,
        react_list: Iterable[ReactEntry],
        factory_list: Iterable[FactoryEntry],
        plugins_dir: Optional[Union[str, "os.PathLike[str]"]] = "./plugins",
        *,
        factory: Optional[Factory] = None,
        thread_pool: Optional[ThreadPool] = None,
        scheduler: Optional[Scheduler] = None,
        logger: Optional[Logger] = None,
        reactor: Optional[Reactor] = None,
        on_plugin_modified: Optional[PluginHandler] = None,
        on_plugin_deleted: Optional[PluginHandler] = None,
    ) -> None:
        self._factory = factory if factory is not None else _shared_command_factory()
        self._thread_pool = thread_pool if thread_pool is not None else get_instance(ThreadPool)
        self._scheduler = scheduler
        self._logger = logger
        self._reactor = reactor if reactor is not None else Reactor()

        for key, creator in factory_list:
            self._factory.register(key, creator)

        for (fd, mode), proxy in react_list:
            self._reactor.register(fd, mode, self._make_handler(proxy))

        self._dir_monitor: Optional[DirMonitor] = None
        self._plugin_callbacks: list[Callback[str]] = []
        if plugins_dir is not None:
            self._dir_monitor = DirMonitor(plugins_dir)
            if on_plugin_modified is not None:
                modified = Callback(on_plugin_modified)
                self._dir_monitor.register_for_modify(modified)
                self._plugin_callbacks.append(modified)
            if on_plugin_deleted is not None:
                deleted = Callback(on_plugin_deleted)
                self._dir_monitor.register_for_delete(deleted)
                self._plugin_callbacks.append(deleted)

    def run(self) -> None:
        """Start watching plugins and run the reactor; blocks until stopped."""
        if self._dir_monitor is not None:
            self._dir_monitor.run()
        self._reactor.run()

    def stop(self) -> None:
        self._reactor.stop()
        if self._dir_monitor is not None:
            self._dir_monitor.stop()

    def _make_handler(self, proxy: InputProxy) -> Callable[[int, FdMode], None]:
        def handle(fd: int, mode: FdMode) -> None:
            task_args = proxy.get_task_args(fd, mode)
            if task_args is None:
                return
            self._thread_pool.add_task(
                FrameworkTask(task_args, self._factory, self._scheduler, self._logger)
            )

        return handle