import re

from pysqladapt.base import BaseGenerator, GeneratorOptions
from pysqladapt.util.typing import override

_escape_string_table = str.maketrans(
    {
        "\\": "\\\\",
        "'": "\\'",
        "\b": "\\b",
        "\f": "\\f",
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
    }
)


class PostgreSQLGenerator(BaseGenerator):
    "Generator for PostgreSQL."

    def __init__(self, options: GeneratorOptions) -> None:
        super().__init__(options)

    @override
    def quote_string(self, text: str) -> str:
        if re.search(r"[\b\f\n\r\t]", text):
            # escape string constant, e.g. E'line\nbreak'
            string = text.translate(_escape_string_table)
            return f"E'{string}'"
        elif not self.options.standard_conforming_strings:
            string = text.replace("\\", "\\\\").replace("'", "''")
            return f"'{string}'"
        else:
            string = text.replace("'", "''")
            return f"'{string}'"

    @override
    def get_current_schema_stmt(self) -> str:
        return "current_schema()"
