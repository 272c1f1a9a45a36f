"""Local volume discoverer entry point."""

import time
from logging import Logger

from kubernetes.config.config_exception import ConfigException
from pydantic import ValidationError

from kubernetes import client, config
from local_volume.config import Settings, get_settings
from local_volume.discovery.discoverer import Discoverer, RuntimeConfig
from local_volume.events import EventRecorder
from local_volume.exceptions import ConfigurationError, InvalidYamlError
from local_volume.loaders.yaml_files import read_user_config
from local_volume.logger import create_logger
from local_volume.node import default_provisioner_name, get_node
from local_volume.parser import parser
from local_volume.util.api import APIUtil
from local_volume.util.volume import VolumeUtil


def create_api(settings: Settings) -> client.CoreV1Api:
    """Load the kubernetes configuration and return the core API client.

    Use the kubeconfig file when set, otherwise the in-cluster service account.

    Raises:
        ConfigurationError if no configuration can be loaded.

    """
    try:
        if settings.KUBECONFIG is not None:
            config.load_kube_config(config_file=str(settings.KUBECONFIG))
        else:
            config.load_incluster_config()
    except ConfigException as e:
        raise ConfigurationError(
            f"Failed to load kubernetes configuration: {e!s}"
        ) from e
    return client.CoreV1Api()


def create_discoverer(settings: Settings, *, logger: Logger) -> Discoverer:
    """Build the discoverer and its collaborators.

    Raises:
        ConfigurationError when the discoverer can't be safely started.

    """
    try:
        user_config = read_user_config(settings.DISCOVERY_CONFIG, logger=logger)
    except InvalidYamlError as e:
        raise ConfigurationError(
            f"Invalid discovery configuration: {e.message}"
        ) from e

    corev1 = create_api(settings)
    node = get_node(corev1, settings.MY_NODE_NAME, timeout=settings.API_TIMEOUT)
    name = settings.PROVISIONER_NAME or default_provisioner_name(node)
    logger.info("Provisioner name: %s", name)

    runtime_config = RuntimeConfig(
        user_config=user_config,
        name=name,
        node=node,
        vol_util=VolumeUtil(),
        api_util=APIUtil(corev1, timeout=settings.API_TIMEOUT),
        recorder=EventRecorder(
            corev1,
            component=name,
            host=node.name,
            namespace=settings.EVENTS_NAMESPACE,
            logger=logger,
            timeout=settings.API_TIMEOUT,
        ),
        logger=logger,
        multithreading=settings.MULTITHREADING,
    )
    return Discoverer(runtime_config)


def run(discoverer: Discoverer, *, period: float, logger: Logger) -> None:
    """Run a pass every period seconds.

    A pass starts only when the previous one completed. A pass that fails
    unexpectedly is logged and retried on the next tick.
    """
    while True:
        start = time.monotonic()
        try:
            report = discoverer.discover_local_volumes()
        except Exception:
            logger.exception("Discovery pass failed")
        else:
            if report.has_errors:
                logger.warning("Discovery pass completed with errors")
        elapsed = time.monotonic() - start
        time.sleep(max(period - elapsed, 0))


def main(log_level: str, once: bool = False) -> None:
    """Main function.

    Load the discovery configuration, read the node identity and create the
    discoverer. Configuration errors stop the process before the first pass.

    Then periodically scan the discovery directories creating a local persistent
    volume for each new directory or block device and deleting the unbound volumes
    whose media disappeared. With once, run a single pass and exit with an error
    status if something went wrong.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        logger = create_logger("local-volume-discoverer", level=log_level)
        logger.error("Invalid settings: %s", e)
        exit(1)
    logger = create_logger(settings.APP_NAME, level=log_level)

    try:
        discoverer = create_discoverer(settings, logger=logger)
    except ConfigurationError as e:
        logger.error(e.message)
        exit(1)

    if once:
        report = discoverer.discover_local_volumes()
        if report.has_errors:
            logger.error("Found at least one error.")
            exit(1)
        return

    run(discoverer, period=settings.DISCOVERY_PERIOD, logger=logger)


def cli() -> None:
    args = parser.parse_args()
    main(args.loglevel.upper(), once=args.once)


if __name__ == "__main__":
    cli()
