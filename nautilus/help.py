"""
Nautilus help: the commands registered under the "?" prefix of every shell.

- ?list            commands without prefix (the application's own commands)
- ?list-all        every command, built-ins included
- ?help            short banner about the running application
- ?help COMMAND    every command denoted by COMMAND with its parameters
"""
from typing import Annotated

from rich.console import Group
from rich.table import Table
from rich.text import Text

from .declarations import command, param
from .tokens import escape

_BANNER = (
    "This is %s, running on Nautilus\n"
    "?list lists the application commands, ?list-all every command\n"
    "?help COMMAND describes the parameters of COMMAND\n"
    "exit leaves the shell"
)


class HelpHandler:
    """
    Help commands bound to the shell they are registered on.
    """

    def __init__(self):
        self._shell = None

    def __shell__(self, shell):
        self._shell = shell

    def _commands(self):
        if self._shell is None:
            raise RuntimeError("help-handler is not registered on a shell")
        return self._shell.table.commands

    @command(description="Lists the commands of the application")
    def list(self):
        return [str(descriptor) for descriptor in self._commands() if not descriptor.prefix]

    @command(description="Lists every command, built-in ones included")
    def list_all(self):
        return [str(descriptor) for descriptor in self._commands()]

    @command(name="help", description="Shows information about the shell")
    def banner(self) -> str:
        return _BANNER % (self._shell.app_name if self._shell is not None else "a shell application")

    @command(name="help", description="Shows the parameters of a command")
    def describe(self, name: Annotated[str, param("command-name", "Name or abbreviation of the command")]):
        descriptors = [descriptor for descriptor in self._commands() if descriptor.denoted_by(name)]
        if not descriptors:
            return "unknown command %s, enter ?list to see the available commands" % escape(name)

        sections = []
        for descriptor in descriptors:
            sections.append(Text(descriptor.prefix + descriptor.name, style="bold"))
            sections.append(Text(descriptor.description))
            if descriptor.abbreviation is not None:
                sections.append(Text("abbreviation: " + descriptor.prefix + descriptor.abbreviation))
            if not descriptor.params:
                sections.append(Text("no parameters"))
                continue

            table = Table(box=None, show_edge=False, pad_edge=False)
            table.add_column("parameter")
            table.add_column("type")
            table.add_column("description")
            for spec in descriptor.params:
                table.add_row(
                    ("*" if spec.variadic else "") + spec.name,
                    getattr(spec.value_type, "__name__", repr(spec.value_type)),
                    spec.description,
                )
            sections.append(table)

        return Group(*sections)


__all__ = (
    "HelpHandler",
)
