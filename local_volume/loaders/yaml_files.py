"""Functions to read the YAML file with the storage class discovery map."""

from logging import Logger
from pathlib import Path

import yaml
from pydantic import ValidationError

from local_volume.exceptions import InvalidYamlError
from local_volume.models.config import UserConfig


def read_user_config(fname: Path | str, *, logger: Logger) -> UserConfig:
    """Load the discovery configuration from a YAML file.

    The file content is either the storage class map itself or a dict with the
    'storageClassMap' and 'nodeLabelsForPV' keys.

    Args:
        fname (Path | str): path to the YAML file.
        logger (Logger): Logger instance.

    Returns:
        UserConfig: the validated configuration.

    Raises:
        InvalidYamlError when the YAML file does not exist, is not parsable, is empty
        or does not describe a valid configuration.

    """
    msg = f"Loading discovery configuration from file: {fname}"
    logger.info(msg)

    try:
        with open(fname) as f:
            config = yaml.safe_load(f)
    except OSError as e:
        msg = f"Error reading file {fname}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e
    except yaml.YAMLError as e:
        msg = f"Error parsing file {fname}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e

    if not config:  # empty string/file
        msg = "Empty discovery configuration"
        logger.error(msg)
        raise InvalidYamlError(msg)

    try:
        user_config = UserConfig.model_validate(config)
    except ValidationError as e:
        msg = f"Invalid YAML file: {e!r}"
        logger.error(msg)
        raise InvalidYamlError(msg) from e

    for storage_class, mount_config in user_config.discovery_map.items():
        msg = f"Storage class {storage_class!r}: host dir {mount_config.host_dir!r}, "
        msg += f"mount dir {mount_config.mount_dir!r}"
        logger.debug(msg)
    return user_config
