from dataclasses import dataclass

ID_QUOTE_CHAR = '"'


def quote_id(name: str) -> str:
    "Escapes the quote character in an identifier by doubling it."

    return name.replace(ID_QUOTE_CHAR, 2 * ID_QUOTE_CHAR)


def unquote_id(name: str) -> str:
    "Removes a single pair of surrounding quote characters from an identifier, if present."

    if len(name) >= 2 and name.startswith(ID_QUOTE_CHAR) and name.endswith(ID_QUOTE_CHAR):
        return name[1:-1]
    else:
        return name


@dataclass(frozen=True)
class LocalId:
    id: str

    @property
    def local_id(self) -> str:
        "Unquoted identifier."

        return self.id

    @property
    def quoted_id(self) -> str:
        return ID_QUOTE_CHAR + quote_id(self.id) + ID_QUOTE_CHAR

    def __str__(self) -> str:
        "Quotes an identifier to be embedded in a SQL statement."

        return self.quoted_id
