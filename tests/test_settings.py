import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch


class TestSettings(unittest.TestCase):
    def test_defaults_without_file(self) -> None:
        from mcrelay.settings import load_settings

        with tempfile.TemporaryDirectory() as td, patch.dict(os.environ, {"MCRELAY_HOME": td}):
            s = load_settings()
            self.assertEqual(s.capture_delay_ms, 1000)
            self.assertEqual(s.framer_bytes, 1000)
            self.assertTrue(s.autostart)
            self.assertEqual(s.ready_labels, ["minecraft/DedicatedServer"])
            self.assertEqual(s.resolved_state_path(), Path(td).resolve() / "playtime.json")

    def test_yaml_file_and_overrides(self) -> None:
        from mcrelay.settings import load_settings

        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "settings.yaml"
            p.write_text(
                "channel_id: 42\n"
                "server_command: [java, -jar, server.jar, nogui]\n"
                "labels: [minecraft/MinecraftServer, minecraft/DedicatedServer]\n"
                "operators: [7]\n",
                encoding="utf-8",
            )
            s = load_settings(p, {"channel_id": 99, "token": None})
            self.assertEqual(s.channel_id, 99)
            self.assertEqual(s.server_command, ["java", "-jar", "server.jar", "nogui"])
            self.assertEqual(s.operators, [7])
            self.assertEqual(s.token, "")

    def test_token_from_environment(self) -> None:
        from mcrelay.settings import RelaySettings

        with patch.dict(os.environ, {"RELAY_TOKEN": "abc"}):
            self.assertEqual(RelaySettings(token_env="RELAY_TOKEN").resolved_token(), "abc")
            self.assertEqual(RelaySettings(token="inline", token_env="RELAY_TOKEN").resolved_token(), "inline")
            self.assertEqual(RelaySettings(token_env="not a var").resolved_token(), "")

    def test_invalid_settings_raise(self) -> None:
        from mcrelay.settings import SettingsError, load_settings

        with tempfile.TemporaryDirectory() as td:
            p = Path(td) / "settings.yaml"
            for bad in ("unknown_key: 1\n", "capture_delay_ms: 0\n", "- a list\n", "channel_id: [\n"):
                with self.subTest(bad=bad):
                    p.write_text(bad, encoding="utf-8")
                    with self.assertRaises(SettingsError):
                        load_settings(p)
            with self.assertRaises(SettingsError):
                load_settings(Path(td) / "missing.yaml")


if __name__ == "__main__":
    unittest.main()
