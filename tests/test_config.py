import os
import tempfile
import unittest

from trello_exporter.config_parser.config import ConfigLoader
from trello_exporter.constants import TRELLO_API_ROOT
from trello_exporter.exception import TrelloConfigException
from trello_exporter.trello.filter import TrelloFilters

VALID_ENV = {"TRELLGO_APIKEY": "key", "TRELLGO_APITOK": "token"}


class ConfigLoaderTest(unittest.TestCase):
    def test_valid_config(self):
        conf = ConfigLoader(environ=VALID_ENV).load(storage_path="/tmp/export", include_archived=True,
                                                    split_archived=True, max_workers=3)
        self.assertEqual("/tmp/export", conf.storage_path)
        self.assertEqual("key", conf.api_key)
        self.assertEqual("token", conf.token)
        self.assertEqual(TRELLO_API_ROOT, conf.api_url)
        self.assertTrue(conf.include_archived)
        self.assertTrue(conf.split_archived)
        self.assertEqual(3, conf.max_workers)

    def test_custom_api_url(self):
        env = dict(VALID_ENV, TRELLGO_APIURL="https://proxy.local/1/")
        conf = ConfigLoader(environ=env).load(storage_path="/tmp/export")
        self.assertEqual("https://proxy.local/1/", conf.api_url)

    def test_missing_credentials_are_all_reported(self):
        with self.assertRaises(TrelloConfigException) as cm:
            ConfigLoader(environ={}).load(storage_path="/tmp/export")
        message = str(cm.exception)
        self.assertIn("API_KEY", message)
        self.assertIn("API_TOKEN", message)
        self.assertEqual(2, len(cm.exception.errors))

    def test_missing_storage_path(self):
        with self.assertRaises(TrelloConfigException) as cm:
            ConfigLoader(environ=VALID_ENV).load(storage_path=None)
        self.assertIn("STORAGE_PATH", str(cm.exception))

    def test_storage_path_not_required_for_read_only_commands(self):
        conf = ConfigLoader(environ=VALID_ENV).load(storage_required=False)
        self.assertIsNone(conf.storage_path)

    def test_label_with_archived_is_rejected(self):
        with self.assertRaises(TrelloConfigException) as cm:
            ConfigLoader(environ=VALID_ENV).load(storage_path="/tmp/export", include_archived=True,
                                                 label_name="Urgent")
        self.assertIn("Conflicting configs", str(cm.exception))

    def test_non_positive_worker_count(self):
        with self.assertRaises(TrelloConfigException) as cm:
            ConfigLoader(environ=VALID_ENV).load(storage_path="/tmp/export", max_workers=0)
        self.assertIn("MAX_WORKERS", str(cm.exception))

    def test_secret_values_are_not_leaked(self):
        env = {"TRELLGO_APIKEY": "secret-key-value", "TRELLGO_APITOK": "secret-token-value"}
        conf = ConfigLoader(environ=env).load(storage_path="/tmp/export")
        self.assertNotIn("secret-key-value", repr(conf))
        self.assertNotIn("secret-token-value", repr(conf))

    def test_dotenv_file_is_loaded(self):
        with tempfile.TemporaryDirectory() as tmp:
            dotenv_path = os.path.join(tmp, ".env")
            with open(dotenv_path, "w") as f:
                f.write("TRELLGO_APIKEY=dotenv-key\nTRELLGO_APITOK=dotenv-token\n")
            saved = {k: os.environ.pop(k, None) for k in VALID_ENV}
            try:
                conf = ConfigLoader(dotenv_path=dotenv_path).load(storage_path="/tmp/export")
            finally:
                for k, v in saved.items():
                    os.environ.pop(k, None)
                    if v is not None:
                        os.environ[k] = v
        self.assertEqual("dotenv-key", conf.api_key)
        self.assertEqual("dotenv-token", conf.token)


class TrelloFiltersTest(unittest.TestCase):
    def test_label_filter_cannot_include_archived(self):
        with self.assertRaises(TrelloConfigException):
            TrelloFilters(include_archived=True, label_name="Urgent")

    def test_label_search_query(self):
        self.assertEqual('board:b1 label:"In Review" is:open',
                         TrelloFilters(label_name="In Review").label_search_query("b1"))
