"""Rekindle — hot-reload coordination for live module runtimes.

On every source change, works out which modules a running client has to
re-execute, in which order, and sends that command through an evaluation
channel.  Compile warnings and failures suppress the reload and are shown
by the client's diagnostic overlay instead.

Quick start::

    from rekindle import ClientRuntime, HotloadSession, InProcessChannel, load_config

    config = load_config(Path("."))
    client = ClientRuntime.from_config(config)
    session = HotloadSession(config, compiler, InProcessChannel(client.namespace()))
    await session.watch()

Two sides:

    rekindle.build      Authoring side (graph, change detector, dispatcher)
    rekindle.client     Client side    (reload engine, listeners, overlay)

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "ClientRuntime",
    "HotloadSession",
    "InProcessChannel",
    "RekindleConfig",
    "__version__",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import rekindle`` cheap inside a client runtime that only needs
    the client side.
    """
    if name == "RekindleConfig":
        from rekindle.config import RekindleConfig

        return RekindleConfig

    if name == "load_config":
        from rekindle.config_loader import load_config

        return load_config

    if name == "HotloadSession":
        from rekindle.build.session import HotloadSession

        return HotloadSession

    if name == "ClientRuntime":
        from rekindle.client.runtime import ClientRuntime

        return ClientRuntime

    if name == "InProcessChannel":
        from rekindle.channel import InProcessChannel

        return InProcessChannel

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
