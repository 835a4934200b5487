# CLI argument parsing for entryresolver

import argparse

from entryresolver.config import LOG_LEVEL


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Resolve the Entrypoint and Cmd of container images referenced by a pod."
    )
    target = p.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--image", "-i",
        dest="image",
        help="Image (registry/repo:tag) to resolve",
    )
    target.add_argument(
        "--pod-file", "-f",
        dest="pod_file",
        help="Pod manifest (JSON) whose containers should be resolved",
    )
    p.add_argument(
        "--namespace", "-n",
        dest="namespace",
        default="default",
        help="Namespace holding the image pull secret (default: default)",
    )
    p.add_argument(
        "--pull-secret", "-s",
        dest="pull_secret",
        default=None,
        help="Name of the image pull secret, used with --image",
    )
    p.add_argument(
        "--insecure",
        action="store_true",
        help="Skip registry TLS verification (same as REGISTRY_SKIP_VERIFY=true)",
    )
    p.add_argument(
        "--log-level", "-l",
        dest="log_level",
        default=LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help=f"Logging level (default: {LOG_LEVEL})",
    )
    return p.parse_args(argv)
