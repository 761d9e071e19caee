# Letter composition
from legen.letters.composer import LetterComposer as LetterComposer
from legen.letters.composer import compose as compose

__all__ = ["LetterComposer", "compose"]
