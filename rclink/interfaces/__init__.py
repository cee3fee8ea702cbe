from .command_sink import CommandEvent, CommandSink

__all__ = ["CommandEvent", "CommandSink"]
