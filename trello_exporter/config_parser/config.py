import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional

from dotenv import load_dotenv

from trello_exporter.config_parser.config_validation import ConfigValidator, ValidationContext, ConfigSource, \
    ValidationErrorAbs
from trello_exporter.constants import EnvVar, FilePath, DEFAULT_MAX_WORKERS, TRELLO_API_ROOT
from trello_exporter.utils import ObjectUtils

LOG = logging.getLogger(__name__)


class TypeChecker(Enum):
    STR = (ObjectUtils.type_check_strict_str, str)
    OPTIONAL_STR = (ObjectUtils.type_check_optional_str, Optional[str])
    BOOL = (ObjectUtils.type_check_strict_bool, bool)
    POSITIVE_INT = (ObjectUtils.type_check_positive_int, int)

    def __init__(self, checker_func: Callable, typing):
        self.checker_func = checker_func
        self.typing = typing

    def do_type_check(self, value):
        return self.checker_func(value)

    def __str__(self):
        return f"{{checker_func: {self.checker_func.__name__}, required type: {self.typing} }}"


class TrelloConfigType(Enum):
    ENV = ("env", "Environment config")
    CLI = ("cli", "Command line config")

    def __init__(self, value, human_readable_name):
        self.val = value
        self.human_readable_name = human_readable_name


class TrelloCfg(Enum):
    ########################################
    # Environment configs
    API_KEY = (TrelloConfigType.ENV, EnvVar.API_KEY, TypeChecker.STR, True, True)
    API_TOKEN = (TrelloConfigType.ENV, EnvVar.API_TOKEN, TypeChecker.STR, True, True)
    API_URL = (TrelloConfigType.ENV, EnvVar.API_URL, TypeChecker.OPTIONAL_STR, False, False)

    ########################################
    # Command line configs
    STORAGE_PATH = (TrelloConfigType.CLI, "storage_path", TypeChecker.STR, True, False)
    INCLUDE_ARCHIVED = (TrelloConfigType.CLI, "include_archived", TypeChecker.BOOL, False, False)
    SPLIT_ARCHIVED = (TrelloConfigType.CLI, "split_archived", TypeChecker.BOOL, False, False)
    LABEL_NAME = (TrelloConfigType.CLI, "label_name", TypeChecker.OPTIONAL_STR, False, False)
    MAX_WORKERS = (TrelloConfigType.CLI, "max_workers", TypeChecker.POSITIVE_INT, False, False)

    def __init__(self, type, key, type_checker, required, secret):
        self.type = type
        self.key = key
        self.type_checker = type_checker
        self.required = required
        self.secret = secret

    @staticmethod
    def env_configs():
        return [cfg for cfg in TrelloCfg if cfg.type == TrelloConfigType.ENV]


class CfgValidator:
    @staticmethod
    def validate_type_and_value(cfg: TrelloCfg, value, validator: ConfigValidator):
        if value is None or value == "":
            if cfg.required:
                validator.report_error(ValidationErrorAbs.create_undefined_config_error(
                    f"Undefined value for config: {cfg.name}", cfg))
            return None
        try:
            return cfg.type_checker.do_type_check(value)
        except ValueError:
            validator.report_error(ValidationErrorAbs.create_invalid_config_value(
                f"Invalid config value for config: {cfg.name}, type check failed", cfg, value, secret=cfg.secret))
            return None


@dataclass
class ExportConfig:
    storage_path: Optional[str]
    api_key: str
    token: str
    api_url: str = TRELLO_API_ROOT
    include_archived: bool = False
    split_archived: bool = False
    label_name: Optional[str] = None
    max_workers: int = DEFAULT_MAX_WORKERS

    def __repr__(self):
        # Credentials are never printed
        return (f"ExportConfig(storage_path={self.storage_path!r}, api_url={self.api_url!r}, "
                f"include_archived={self.include_archived}, split_archived={self.split_archived}, "
                f"label_name={self.label_name!r}, max_workers={self.max_workers})")


class ConfigLoader:
    """
    Credentials are read from the environment (a .env file in the working directory is loaded first),
    everything else comes from the command line.
    """
    def __init__(self, validator: ConfigValidator = None, environ: Mapping[str, str] = None,
                 dotenv_path: str = None):
        self._validator = validator if validator is not None else ConfigValidator()
        self._environ = environ
        self._dotenv_path = dotenv_path if dotenv_path is not None else FilePath.get_dotenv_path()

    def load_env(self) -> Dict[TrelloCfg, Any]:
        if self._environ is None:
            self._load_dotenv()
            environ = os.environ
        else:
            environ = self._environ

        self._validator.set_context(ValidationContext(ConfigSource.ENV))
        return {cfg: CfgValidator.validate_type_and_value(cfg, environ.get(cfg.key), self._validator)
                for cfg in TrelloCfg.env_configs()}

    def load(self, storage_path: Optional[str] = None,
             include_archived: bool = False,
             split_archived: bool = False,
             label_name: Optional[str] = None,
             max_workers: int = DEFAULT_MAX_WORKERS,
             storage_required: bool = True) -> ExportConfig:
        env_values = self.load_env()

        self._validator.set_context(ValidationContext(ConfigSource.CLI))
        cli_values = {
            TrelloCfg.STORAGE_PATH: storage_path,
            TrelloCfg.INCLUDE_ARCHIVED: include_archived,
            TrelloCfg.SPLIT_ARCHIVED: split_archived,
            TrelloCfg.LABEL_NAME: label_name,
            TrelloCfg.MAX_WORKERS: max_workers,
        }
        if not storage_required:
            cli_values.pop(TrelloCfg.STORAGE_PATH)
        validated = {cfg: CfgValidator.validate_type_and_value(cfg, value, self._validator)
                     for cfg, value in cli_values.items()}
        if validated.get(TrelloCfg.LABEL_NAME) and validated.get(TrelloCfg.INCLUDE_ARCHIVED):
            self._validator.report_error(ValidationErrorAbs.create_conflicting_configs_error(
                "Label filter cannot be combined with including archived cards",
                [TrelloCfg.LABEL_NAME, TrelloCfg.INCLUDE_ARCHIVED]))
        self._validator.fail_if_errors()

        storage = validated.get(TrelloCfg.STORAGE_PATH)
        config = ExportConfig(
            storage_path=os.path.expanduser(storage) if storage else None,
            api_key=env_values[TrelloCfg.API_KEY],
            token=env_values[TrelloCfg.API_TOKEN],
            api_url=env_values[TrelloCfg.API_URL] or TRELLO_API_ROOT,
            include_archived=bool(validated[TrelloCfg.INCLUDE_ARCHIVED]),
            split_archived=bool(validated[TrelloCfg.SPLIT_ARCHIVED]),
            label_name=validated[TrelloCfg.LABEL_NAME],
            max_workers=validated[TrelloCfg.MAX_WORKERS] or DEFAULT_MAX_WORKERS,
        )
        LOG.debug("Loaded config: %s", config)
        return config

    def _load_dotenv(self):
        if not os.path.exists(self._dotenv_path):
            LOG.debug("No dotenv file found at %s, using process environment only", self._dotenv_path)
            return
        LOG.info("Loading environment from file: %s", self._dotenv_path)
        if not load_dotenv(self._dotenv_path):
            LOG.warning("Dotenv file %s did not define any variables", self._dotenv_path)
