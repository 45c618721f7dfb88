#!/usr/bin/env python3

import os
import re
import logging
from dataclasses import dataclass

import yaml

from runauth.errors import ConfigError

log = logging.getLogger(__name__)

VAR_REGEX = re.compile(r"\${(.*?)}")

DEFAULT_PORT = 8080
DEFAULT_TIMEOUT = 10.0

URL_ENV = "RECEIVING_SERVICE_URL"
AUDIENCE_ENV = "ID_TOKEN_AUDIENCE"
TIMEOUT_ENV = "REQUEST_TIMEOUT"
ID_TOKEN_ENV = "USE_ID_TOKEN"

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off")


@dataclass(frozen=True)
class SendingConfig:
    receiving_service_url: str
    audience: str
    timeout: float = DEFAULT_TIMEOUT
    use_id_token: bool = True


def load_config_file(path):
    try:
        with open(path, "r") as f:
            conf = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}")

    if conf is None:
        return {}
    if not isinstance(conf, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return conf


def interpolate_var(string, environ=None):
    """Replace ${NAME} references with values from the environment."""
    environ = os.environ if environ is None else environ
    interpolated_string = str(string)
    for match in set(re.findall(VAR_REGEX, interpolated_string)):
        try:
            interpolated_string = interpolated_string.replace(f"${{{match}}}", environ[match])
        except KeyError:
            log.error(f"Failed to interpolate ${{{match}}} in {string}")

    return interpolated_string


def parse_bool(name, value):
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def parse_timeout(name, value):
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number of seconds, got {value!r}")
    if timeout <= 0:
        raise ConfigError(f"{name} must be positive, got {value!r}")
    return timeout


def _env(environ, name):
    value = environ.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def load_sending_config(config_file=None, environ=None, use_id_token=None):
    """Build the sending service configuration once, at process start.

    Environment variables win over the optional YAML file, which wins over
    the defaults. ``use_id_token`` (from the command line) wins over both.
    """
    environ = os.environ if environ is None else environ
    conf = load_config_file(config_file) if config_file else {}
    if conf:
        log.debug(f"Loaded {config_file}: {conf}")

    url = _env(environ, URL_ENV)
    if url is None and conf.get("receiving-service-url") is not None:
        url = interpolate_var(conf["receiving-service-url"], environ).strip()
    if not url:
        raise ConfigError(f"{URL_ENV} environment variable is not set")

    audience = _env(environ, AUDIENCE_ENV)
    if audience is None and conf.get("audience") is not None:
        audience = interpolate_var(conf["audience"], environ).strip()

    timeout = DEFAULT_TIMEOUT
    if _env(environ, TIMEOUT_ENV) is not None:
        timeout = parse_timeout(TIMEOUT_ENV, _env(environ, TIMEOUT_ENV))
    elif conf.get("timeout") is not None:
        timeout = parse_timeout("timeout", interpolate_var(conf["timeout"], environ))

    if use_id_token is None:
        use_id_token = True
        if _env(environ, ID_TOKEN_ENV) is not None:
            use_id_token = parse_bool(ID_TOKEN_ENV, _env(environ, ID_TOKEN_ENV))
        elif conf.get("id-token") is not None:
            use_id_token = parse_bool("id-token", conf["id-token"])

    return SendingConfig(
        receiving_service_url=url,
        audience=audience or url,
        timeout=timeout,
        use_id_token=use_id_token,
    )


def listen_port(port=None, environ=None):
    environ = os.environ if environ is None else environ
    if port:
        return port
    value = _env(environ, "PORT")
    if value is None:
        return DEFAULT_PORT
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"PORT must be an integer, got {value!r}")
