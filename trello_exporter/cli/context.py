from dataclasses import dataclass
from typing import Any, Type, List, Optional

import click

from trello_exporter.cmd_handler import MainCommandHandler


@dataclass(frozen=True)
class ContextProperty:
    """Defines the structure for a property in the Click Context."""
    # Used both as the self.obj key and the attribute name
    name: str
    attr_type: Type[Any]


PROPERTY_CONFIG: List[ContextProperty] = [
    ContextProperty(name='log_level', attr_type=int),
    ContextProperty(name='log_file', attr_type=Optional[str]),
    ContextProperty(name='quiet', attr_type=bool),
    ContextProperty(name='working_dir', attr_type=str),
    ContextProperty(name='handler', attr_type=MainCommandHandler),
]


def _create_context_property(prop_config: ContextProperty) -> property:
    def getter(self):
        return self.obj.get(prop_config.name)

    def setter(self, v):
        self.obj[prop_config.name] = v

    return property(getter, setter)


class ClickContextWrapper(click.Context):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)


# Type hints for attributes like ctx.log_level
for config in PROPERTY_CONFIG:
    ClickContextWrapper.__annotations__[config.name] = config.attr_type

for config in PROPERTY_CONFIG:
    setattr(ClickContextWrapper, config.name, _create_context_property(config))


class TrelloGroup(click.Group):
    """A custom Group class that ensures all its contexts are of type ClickContextWrapper."""
    context_class = ClickContextWrapper


class TrelloCommand(click.Command):
    """A custom Command class that ensures all its contexts are of type ClickContextWrapper."""
    context_class = ClickContextWrapper
