from enum import Enum


class StatusColor(Enum):
    RED = "[red]"
    YELLOW = "[yellow]"
    BLUE = "[blue]"
    GREEN = "[green]"
    MAGENTA = "[magenta]"
    RESET = "[/]"

    def __str__(self):
        return self.value
