import unittest

from controlo.domain.enums import ObjectType, Outcome, Role, Status
from controlo.ui_strings import MESSAGES, UI_TEXTS, error_message, get_ui_text, success_message


class UiStringsTest(unittest.TestCase):
    def test_messages_are_not_empty(self) -> None:
        for category, messages in MESSAGES.items():
            for key, text in messages.items():
                self.assertTrue((text or "").strip(), f"mensagem vazia: {category}.{key}")

    def test_page_titles_exist(self) -> None:
        for key in ("page.login", "page.concursos", "page.concursos_ordered", "page.users", "page.logs"):
            self.assertIn(key, UI_TEXTS)

    def test_missing_keys_fall_back(self) -> None:
        self.assertEqual(get_ui_text("nao.existe"), "nao.existe")
        self.assertEqual(error_message("nao_existe", "padrao"), "padrao")
        self.assertEqual(success_message("registered"), MESSAGES["success"]["registered"])

    def test_permission_message_is_exact(self) -> None:
        self.assertEqual(error_message("permission_denied"), "Não autorizado para esta operação")


class LookupLabelsTest(unittest.TestCase):
    def test_enum_labels_match_lookup_rows(self) -> None:
        self.assertEqual(Role.label_for(4), "Convidado")
        self.assertEqual(ObjectType.label_for(5), "ROB")
        self.assertEqual(Status.label_for(2), "Em Andamento")
        self.assertEqual(Outcome.label_for(4), "Excluído")

    def test_unknown_values_use_default(self) -> None:
        self.assertEqual(ObjectType.label_for(None), "")
        self.assertEqual(Status.label_for("x", "?"), "?")
        self.assertIsNone(Role.from_value(0))


if __name__ == "__main__":
    unittest.main()
