import unittest

from pysqladapt.formation.constraints import (
    columns_from_key_definition,
    parse_foreign_key,
)
from pysqladapt.formation.object_types import (
    ForeignKey,
    FormationError,
    MalformedConstraintError,
    MalformedKeyDefinitionError,
)


class TestKeyDefinition(unittest.TestCase):
    def test_simple(self) -> None:
        self.assertEqual(columns_from_key_definition("(id)"), ["id"])
        self.assertEqual(columns_from_key_definition("KEY (a,b)"), ["a", "b"])

    def test_quoted(self) -> None:
        self.assertEqual(
            columns_from_key_definition('KEY (a, "B C", d)'), ["a", "B C", "d"]
        )
        self.assertEqual(
            columns_from_key_definition('("Comma, Inside", x)'), ["Comma, Inside", "x"]
        )

    def test_index_definition(self) -> None:
        self.assertEqual(
            columns_from_key_definition(
                'CREATE UNIQUE INDEX "Person_pkey" ON public."Person" USING btree (tenant_id, "Last Name", first_name)'
            ),
            ["tenant_id", "Last Name", "first_name"],
        )

    def test_order_preserved(self) -> None:
        self.assertEqual(
            columns_from_key_definition("(z, a, m, b)"), ["z", "a", "m", "b"]
        )

    def test_whitespace(self) -> None:
        self.assertEqual(
            columns_from_key_definition("  (\n\ta ,\tb\n)  "), ["a", "b"]
        )

    def test_escaped_quote(self) -> None:
        # the text up to the first embedded quote is kept
        self.assertEqual(columns_from_key_definition('("say ""hi""", x)'), ["say ", "x"])

    def test_malformed(self) -> None:
        with self.assertRaises(MalformedKeyDefinitionError):
            columns_from_key_definition("a, b")
        with self.assertRaises(MalformedKeyDefinitionError):
            columns_from_key_definition("KEY (a, b")
        with self.assertRaises(FormationError):
            columns_from_key_definition("KEY ) a, b (")


class TestForeignKey(unittest.TestCase):
    def test_simple(self) -> None:
        key = parse_foreign_key("fk1", "FOREIGN KEY (a, b) REFERENCES t (c, d)")
        self.assertEqual(key, ForeignKey("fk1", ("a", "b"), "t", ("c", "d")))

    def test_catalog_format(self) -> None:
        key = parse_foreign_key(
            "fk_person_address",
            "FOREIGN KEY (address_id) REFERENCES address(id) ON DELETE CASCADE",
        )
        self.assertEqual(key.name, "fk_person_address")
        self.assertEqual(key.columns, ("address_id",))
        self.assertEqual(key.referenced_table, "address")
        self.assertEqual(key.referenced_columns, ("id",))

    def test_quoted(self) -> None:
        key = parse_foreign_key(
            '"FK Order Customer"',
            'FOREIGN KEY ("Customer Region", "Customer Id") REFERENCES "Customer"("Region", "Id")',
        )
        self.assertEqual(key.name, "FK Order Customer")
        self.assertEqual(key.columns, ("Customer Region", "Customer Id"))
        self.assertEqual(key.referenced_table, "Customer")
        self.assertEqual(key.referenced_columns, ("Region", "Id"))

    def test_positional_correlation(self) -> None:
        key = parse_foreign_key(
            "fk", "FOREIGN KEY (x, y, z) REFERENCES target(c, b, a)"
        )
        self.assertEqual(
            list(zip(key.columns, key.referenced_columns)),
            [("x", "c"), ("y", "b"), ("z", "a")],
        )

    def test_string(self) -> None:
        key = ForeignKey("fk", ("a", "b"), "t", ("c", "d"))
        self.assertEqual(
            str(key),
            'CONSTRAINT "fk" FOREIGN KEY ("a", "b") REFERENCES "t" ("c", "d")',
        )

    def test_malformed(self) -> None:
        for definition in [
            "CHECK ((price > 0))",
            "FOREIGN KEY (a) t(c)",
            "FOREIGN KEY (a) REFERENCES t",
            "",
        ]:
            with self.subTest(definition=definition):
                with self.assertRaises(MalformedConstraintError):
                    parse_foreign_key("fk", definition)

    def test_error_message(self) -> None:
        with self.assertRaises(MalformedConstraintError) as cm:
            parse_foreign_key("fk_check", "CHECK (x > 0)")
        self.assertEqual(cm.exception.constraint, "fk_check")
        self.assertEqual(cm.exception.definition, "CHECK (x > 0)")
        self.assertIn('"fk_check"', str(cm.exception))


if __name__ == "__main__":
    unittest.main()
