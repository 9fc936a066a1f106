import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from pythoncommons.string_utils import auto_str

from trello_exporter.exception import TrelloConfigException

LOG = logging.getLogger(__name__)


class ConfigSource(Enum):
    ENV = "environment"
    CLI = "command line"

    def __init__(self, val):
        self.val = val


class ValidationErrorType(Enum):
    UNDEFINED_CONFIG = ("undefined_config", "Undefined configs")
    INVALID_CONFIG_VALUE = ("invalid_config_value", "Invalid config value")
    CONFLICTING_CONFIGS = ("conflicting_configs", "Conflicting configs")

    def __init__(self, val, human_readable_err):
        self.val = val
        self.human_readable_err = human_readable_err


@dataclass(frozen=True)
class ValidationContext:
    conf_source: ConfigSource


class ValidationErrorAbs(ABC):
    def __init__(self, type: ValidationErrorType, message: str):
        self.type = type
        self.message = message
        self.src = None

    @abstractmethod
    def to_short_str(self):
        pass

    @staticmethod
    def create_invalid_config_value(message, cfg, value, secret=False):
        # Secret values never end up in error messages
        shown_value = "***" if secret else value
        return InvalidConfigValidationError(ValidationErrorType.INVALID_CONFIG_VALUE, message, cfg, shown_value)

    @staticmethod
    def create_undefined_config_error(message, cfg):
        return MissingConfigValidationError(ValidationErrorType.UNDEFINED_CONFIG, message, cfg)

    @staticmethod
    def create_conflicting_configs_error(message, cfgs):
        return ConflictingConfigValidationError(ValidationErrorType.CONFLICTING_CONFIGS, message, cfgs)


@auto_str
class MissingConfigValidationError(ValidationErrorAbs):
    def __init__(self, type: ValidationErrorType, message, cfg):
        super().__init__(type, message)
        self.cfg = cfg

    def to_short_str(self):
        return f"{self.message} (config: {self.cfg.key})"


@auto_str
class InvalidConfigValidationError(ValidationErrorAbs):
    def __init__(self, type: ValidationErrorType, message, cfg, value: Any):
        super().__init__(type, message)
        self.cfg = cfg
        self.value = value

    def to_short_str(self):
        return f"{self.message} (config: {self.cfg.key}, value: {self.value})"


@auto_str
class ConflictingConfigValidationError(ValidationErrorAbs):
    def __init__(self, type: ValidationErrorType, message, cfgs):
        super().__init__(type, message)
        self.cfgs = cfgs

    def to_short_str(self):
        keys = ", ".join(cfg.key for cfg in self.cfgs)
        return f"{self.message} (configs: {keys})"


class ConfigValidator:
    def __init__(self):
        self._errors: Dict[ValidationContext, List[ValidationErrorAbs]] = defaultdict(list)
        self._context: ValidationContext = ValidationContext(ConfigSource.CLI)

    def set_context(self, ctx: ValidationContext):
        self._context = ctx

    @property
    def has_errors(self):
        return any(self._errors.values())

    @property
    def errors(self) -> List[ValidationErrorAbs]:
        return [err for errs in self._errors.values() for err in errs]

    def report_error(self, error: ValidationErrorAbs):
        LOG.error("Validation error reported: %s", error.to_short_str())
        error.src = self._context
        self._errors[self._context].append(error)

    def fail_if_errors(self):
        errors: Dict[ValidationErrorType, Dict[str, List[str]]] = {et: self._filter_by_type(et)
                                                                    for et in ValidationErrorType}
        not_empty_errs = sum(bool(errs) for errs in errors.values())

        err_msg = ""
        if not_empty_errs > 1:
            err_msg = "Multiple error types found!\n\n"
        for err_type, errs in errors.items():
            if len(errs) > 0:
                err_msg += (f"{err_type.human_readable_err}\n"
                            f"{json.dumps(errs, indent=4)}\n")
        if err_msg:
            raise TrelloConfigException(err_msg, errors=self.errors)

    def _filter_by_type(self, t: ValidationErrorType) -> Dict[str, List[str]]:
        result = defaultdict(list)
        for ctx, errors in self._errors.items():
            for err in errors:
                if err.type == t:
                    result[ctx.conf_source.val].append(err.to_short_str())
        return result
