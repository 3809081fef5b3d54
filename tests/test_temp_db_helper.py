import os
import tempfile
import unittest

from tests.helpers.temp_db import TempDbSandbox, assert_safe_temp_db_path


class TempDbHelperTest(unittest.TestCase):
    def test_temp_db_create_and_cleanup(self) -> None:
        sandbox = TempDbSandbox(prefix="temp_db_sanity")
        db_path = sandbox.db_path
        temp_dir = sandbox.temp_dir

        self.assertTrue(os.path.exists(temp_dir))
        self.assertTrue(os.path.realpath(db_path).startswith(os.path.realpath(tempfile.gettempdir())))

        conn = sandbox.connect()
        try:
            conn.execute("CREATE TABLE IF NOT EXISTS sanity (id INTEGER PRIMARY KEY, value TEXT)")
            conn.execute("INSERT INTO sanity (value) VALUES ('ok')")
            row = conn.execute("SELECT COUNT(*) AS n FROM sanity").fetchone()
            self.assertEqual(int(row["n"]), 1)
        finally:
            conn.close()

        sandbox.cleanup()
        self.assertFalse(os.path.exists(db_path))
        self.assertFalse(os.path.exists(temp_dir))

    def test_disallow_workspace_paths(self) -> None:
        workspace_db = os.path.join(os.getcwd(), "concurso_test.db")
        with self.assertRaises(ValueError):
            assert_safe_temp_db_path(workspace_db)

    def test_config_overrides_apply(self) -> None:
        sandbox = TempDbSandbox(prefix="temp_db_config")
        try:
            config = sandbox.make_config(object, CSRF_ENABLED=True)
            self.assertEqual(config.DB_PATH, sandbox.db_path)
            self.assertTrue(config.CSRF_ENABLED)
            self.assertFalse(config.MAIL_ENABLED)
        finally:
            sandbox.cleanup()


if __name__ == "__main__":
    unittest.main()
