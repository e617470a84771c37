import tempfile
import textwrap
import unittest
from pathlib import Path

from pydantic import ValidationError

from sitecheck.core.config import (
    AppConfig,
    CheckerMode,
    ConfigError,
    PolitenessConfig,
    ThemeCheckerConfig,
    load_app_config,
)
from sitecheck.core.config.loader import read_action_inputs


class ConfigFileTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def write(self, text: str) -> Path:
        path = self.dir / "sitecheck.yaml"
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    def test_defaults(self) -> None:
        config = load_app_config(self.write(""), environ={})

        self.assertIs(config.checker, CheckerMode.FRIEND)
        self.assertEqual(config.retry_times, 3)
        self.assertEqual(config.exclude_issue_with_labels, ["审核中", "白名单"])
        self.assertEqual(config.accepted_code_set, frozenset({"200", "301"}))
        self.assertEqual(config.labels.unreachable_label, "无法访问")
        self.assertEqual(config.invalid_label, "未添加友链")
        self.assertEqual(config.theme.meta_tag, 'meta[theme-name="Stellar"]')
        self.assertEqual(config.politeness.max_concurrent_requests, 5)
        self.assertEqual(config.politeness.request_delay_min_ms, 1000)
        self.assertEqual(config.politeness.request_delay_max_ms, 3000)
        self.assertEqual(len(config.politeness.user_agents), 2)

    def test_yaml_values(self) -> None:
        path = self.write(
            """
            checker: Theme
            retry_times: 5
            accepted_codes: [200, 204]
            exclude_issue_with_labels: "hold, ignore ,"
            theme:
              meta_tag: volantis
            politeness:
              max_concurrent_requests: 2
            """
        )
        config = load_app_config(path, environ={})

        self.assertIs(config.checker, CheckerMode.THEME)
        self.assertEqual(config.retry_times, 5)
        self.assertEqual(config.accepted_code_set, frozenset({"200", "204"}))
        self.assertEqual(config.exclude_issue_with_labels, ["hold", "ignore"])
        self.assertTrue(config.theme.legacy_volantis)
        self.assertEqual(config.invalid_label, "无效主题")
        self.assertEqual(config.politeness.max_concurrent_requests, 2)

    def test_env_expansion(self) -> None:
        path = self.write(
            """
            github:
              repository: ${REPO}
              token: ${TOKEN:-fallback}
            """
        )
        config = load_app_config(path, environ={"REPO": "me/links"})

        self.assertEqual(config.github.repository, "me/links")
        self.assertEqual(config.github.token, "fallback")

    def test_unset_env_var_is_unset(self) -> None:
        path = self.write("github:\n  repository: ${GITHUB_REPOSITORY}\n")
        config = load_app_config(path, environ={})
        self.assertIsNone(config.github.repository)

    def test_action_inputs_override_file(self) -> None:
        path = self.write("checker: friend\nretry_times: 2\n")
        environ = {
            "INPUT_CHECKER": "theme",
            "INPUT_RETRY_TIMES": "4",
            "INPUT_UNREACHABLE_LABEL": "down",
            "INPUT_THEME_CHECKER_META_TAG": 'meta[name="theme"]',
            "INPUT_ACCEPTED_CODES": "",
        }
        config = load_app_config(path, environ=environ)

        self.assertIs(config.checker, CheckerMode.THEME)
        self.assertEqual(config.retry_times, 4)
        self.assertEqual(config.labels.unreachable_label, "down")
        self.assertEqual(config.theme.meta_tag, 'meta[name="theme"]')
        self.assertEqual(config.accepted_codes, "200,301")

    def test_overrides_win(self) -> None:
        path = self.write("checker: friend\n")
        config = load_app_config(
            path,
            environ={"INPUT_CHECKER": "friend"},
            overrides={"checker": "theme", "logging": {"level": "DEBUG"}},
        )
        self.assertIs(config.checker, CheckerMode.THEME)
        self.assertEqual(config.logging.level, "DEBUG")

    def test_invalid_retry_times(self) -> None:
        path = self.write("retry_times: 0\n")
        with self.assertRaises(ConfigError) as ctx:
            load_app_config(path, environ={})
        self.assertIn("retry_times", ctx.exception.details)

    def test_invalid_theme_selector(self) -> None:
        path = self.write("checker: theme\ntheme:\n  meta_tag: 'meta[[['\n")
        with self.assertRaises(ConfigError) as ctx:
            load_app_config(path, environ={})
        self.assertIn("meta_tag", ctx.exception.details)

    def test_volantis_sentinel_is_not_a_selector(self) -> None:
        config = load_app_config(self.write("theme:\n  meta_tag: Volantis\n"), environ={})
        self.assertTrue(config.theme.legacy_volantis)

    def test_unknown_checker(self) -> None:
        with self.assertRaises(ConfigError):
            load_app_config(self.write("checker: backlinks\n"), environ={})

    def test_invalid_yaml(self) -> None:
        with self.assertRaises(ConfigError) as ctx:
            load_app_config(self.write("checker: [unclosed\n"), environ={})
        self.assertIsNotNone(ctx.exception.details)

    def test_top_level_must_be_mapping(self) -> None:
        with self.assertRaises(ConfigError):
            load_app_config(self.write("- a\n- b\n"), environ={})

    def test_missing_file(self) -> None:
        with self.assertRaises(ConfigError):
            load_app_config(self.dir / "absent.yaml", environ={})


class ModelValidationTestCase(unittest.TestCase):
    def test_delay_window(self) -> None:
        with self.assertRaises(ValidationError):
            PolitenessConfig(request_delay_min_ms=500, request_delay_max_ms=100)
        config = PolitenessConfig(request_delay_min_ms=100, request_delay_max_ms=100)
        self.assertEqual(config.request_delay_max_ms, 100)

    def test_empty_accepted_codes(self) -> None:
        with self.assertRaises(ValidationError):
            AppConfig(accepted_codes=" , ")

    def test_accepted_code_int(self) -> None:
        self.assertEqual(AppConfig(accepted_codes=200).accepted_code_set, frozenset({"200"}))

    def test_github_repository_shape(self) -> None:
        with self.assertRaises(ValidationError):
            AppConfig(github={"repository": "just-a-name"})

    def test_log_level_normalized(self) -> None:
        self.assertEqual(AppConfig(logging={"level": "debug"}).logging.level, "DEBUG")
        with self.assertRaises(ValidationError):
            AppConfig(logging={"level": "chatty"})

    def test_volantis_sentinel_case_insensitive(self) -> None:
        self.assertTrue(ThemeCheckerConfig(meta_tag=" Volantis ").legacy_volantis)
        self.assertFalse(ThemeCheckerConfig().legacy_volantis)


class ActionInputsTestCase(unittest.TestCase):
    def test_nested_paths(self) -> None:
        overrides = read_action_inputs({
            "INPUT_FRIEND_CHECKER_INVALID_LABEL": "no-link",
            "INPUT_MAX_CONCURRENT_REQUESTS": " 3 ",
            "INPUT_LOG_LEVEL": "   ",
            "UNRELATED": "x",
        })
        self.assertEqual(overrides, {
            "labels": {"friend_checker_invalid_label": "no-link"},
            "politeness": {"max_concurrent_requests": "3"},
        })


if __name__ == "__main__":
    unittest.main()
