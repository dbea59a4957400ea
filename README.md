# iotdrive

iotdrive is a distributed block device. A *master* node takes requests from
a Linux network block device (NBD). It turns each read or write into a
message and sends it over UDP to two *minion* storage nodes: the minion that
owns the offset and the next one as a backup. Each minion serves the request
from a local backing file and answers the master. The master then replies to
the block device.

Both sides run on a small event-driven framework. You can also use the
framework by itself. The package has no third-party runtime dependencies.

## Framework building blocks

| Module | What it gives you |
| --- | --- |
| `iotdrive.dispatcher` | `Dispatcher` and `Callback`: an observer. Registration changes take effect at the next `notify`. `close` calls each callback's `notify_death`. |
| `iotdrive.factory` | `Factory`: maps a key to a creator. `create(key, *args)` builds the object and raises `KeyError` for an unknown key. |
| `iotdrive.registry` | `get_instance(cls)` keeps one shared instance per key and `reset_instances()` forgets them. `get_singleton(cls)` is the same, except that after `destroy_singletons()` it raises `SingletonDestroyedError`. |
| `iotdrive.waitable_queue` | `WaitableQueue`: a thread-safe FIFO queue, or a max-priority queue with `priority=True`. `pop(timeout)` waits and raises `TimeoutError` when the timeout runs out. |
| `iotdrive.logger` | `Logger` with `Severity` levels. A background thread appends timestamped lines to a file (`Log.txt` by default). |
| `iotdrive.interfaces` | The abstract roles `TaskArgs`, `Command`, `InputProxy`, `SchedulerTask`, and the `FdMode` enum. |
| `iotdrive.threadpool` | `ThreadPool`: `Priority` levels, `pause`/`resume`, `set_num_threads` and `shutdown`. Tasks are `FunctionTask`, `FutureTask`, or any plain callable. |
| `iotdrive.scheduler` | `Scheduler.add_task(task, delay)` runs a task after a delay in seconds. `Timer` is the one-shot timer behind it. |
| `iotdrive.async_injection` | `AsyncInjection(func, interval)`: calls `func` every `interval` seconds until it returns true. |
| `iotdrive.reactor` | `Reactor` with a `select`-based `SelectListener`. It calls `handler(fd, mode)` when a registered descriptor is ready. |
| `iotdrive.sockets` | `TCPClient`, `TCPServer`, `TCPConnection` and `UDPSocket` wrappers. |
| `iotdrive.dir_monitor` | `DirMonitor`: polls a directory and reports files that are written or deleted, as `"<dir>/<name>"`. |
| `iotdrive.framework` | `Framework`: connects input proxies, the reactor, the command factory and the thread pool. `FrameworkTask` runs one command. |

## Storage components

| Module | Role |
| --- | --- |
| `iotdrive.uid` | `UID` request identifiers. `next_uid()` returns fresh ones. |
| `iotdrive.messages` | The master/minion wire messages: `ReadMessageSend`, `WriteMessageSend`, `ReadMessageResponse`, `WriteMessageResponse`, plus `decode_message`. Each starts with a 16-byte little-endian header: size, class type, UID. |
| `iotdrive.task_args` | Task arguments for the NBD side (`NBDArgs`, `NBDReadArgs`, `NBDWriteArgs`) and for the minion side (`MinionReadArgs`, `MinionWriteArgs`). |
| `iotdrive.nbd` | NBD framing (`parse_request`, `NbdRequest`, `NbdReply`, `ntohll`). `NbdDevice` attaches a kernel NBD device to a socket pair. |
| `iotdrive.nbd_proxy` | `NBDProxy`: turns NBD requests into task arguments and sends the replies back. |
| `iotdrive.minion_proxy` | `MinionProxy`: the master's UDP link to one minion. |
| `iotdrive.minion_manager` | `MinionManager`: sends each request to a primary minion and a backup minion, and issues a `Ticket` for it. |
| `iotdrive.ticket` | `Ticket` and `TaskResult` combine the two minion answers into one result. Also the `Response`, `ReadResponse` and `WriteResponse` roles. |
| `iotdrive.response_manager` | `ResponseManager`: keeps track of open tickets and sends the NBD replies. |
| `iotdrive.master_commands` | `MasterReadCommand` and `MasterWriteCommand`. |
| `iotdrive.master_proxy` | `MasterProxy`: the minion's UDP link to the master. |
| `iotdrive.file_manager` | `FileManager`: reads and writes byte ranges of the minion's backing file. |
| `iotdrive.minion_commands` | `MinionReadCommand` and `MinionWriteCommand`. |

## Examples

A factory and a queue:

```python
from iotdrive.factory import Factory
from iotdrive.waitable_queue import WaitableQueue

shapes = Factory()
shapes.register("square", lambda side: side * side)
assert shapes.create("square", 4) == 16

queue = WaitableQueue()
queue.push("job")
assert queue.pop(0.1) == "job"
assert queue.is_empty()
```

Messages encode to plain bytes and decode back:

```python
from iotdrive.messages import WriteMessageSend, decode_message
from iotdrive.uid import next_uid

message = WriteMessageSend(next_uid(), offset=4, data=b"bla bla")
assert decode_message(message.to_bytes()) == message
```

A minion listening on UDP port 8080. The backing file `./a.dat` must already
exist, because `FileManager` opens it for reading and writing and does not
create it:

```python
from iotdrive.framework import Framework
from iotdrive.interfaces import FdMode
from iotdrive.master_proxy import MasterProxy
from iotdrive.minion_commands import MinionReadCommand, MinionWriteCommand
from iotdrive.registry import get_instance

proxy = get_instance(MasterProxy)
proxy.open(8080)
framework = Framework(
    [((proxy.fileno(), FdMode.READ), proxy)],
    [(FdMode.READ, MinionReadCommand), (FdMode.WRITE, MinionWriteCommand)],
    plugins_dir=None,
)
framework.run()  # blocks until framework.stop()
```

A master is put together the same way. Build a `MinionProxy` for each minion
and pass them to `get_instance(MinionManager).configure(size_per_minion, minions)`.
Open an `NbdDevice` and wrap its `connection` in an `NBDProxy`, then call
`get_instance(ResponseManager).attach(nbd_proxy)`. Finally run a `Framework`
that registers the connection's descriptor with the proxy, and
`MasterReadCommand` and `MasterWriteCommand` under `FdMode.READ` and
`FdMode.WRITE`.

## What the package does not do

- It has no command-line program. You wire up a master or a minion in your
  own code, as shown above.
- `Framework` does not load plugin code. When `plugins_dir` is given (the
  default is `./plugins`, which must exist), files written to or deleted
  from that directory are only reported to the `on_plugin_modified` and
  `on_plugin_deleted` handlers. Pass `plugins_dir=None` to turn watching off.
- Each request is stored on two minions. No data is moved between minions
  when one fails.
- `NbdDevice` only works on Linux, and it needs access to an NBD device node
  such as `/dev/nbd0`.