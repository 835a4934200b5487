#  entryresolver command line front end
#  Resolves image Entrypoint/Cmd for a single image or every container of a pod manifest
import json
import os
import sys

from kubernetes.config.config_exception import ConfigException  # type: ignore

from entryresolver.config import configure_logging
from entryresolver.modules.cli import parse_args
from entryresolver.modules.errors import ResolutionError
from entryresolver.modules.resolver import get_entrypoint_cmd, load_core_v1


def load_targets(args):
    """Return (namespace, containers, pod_spec) from --pod-file or --image."""
    if args.pod_file:
        with open(args.pod_file, "r", encoding="utf-8") as f:
            pod = json.load(f)
        namespace = (pod.get("metadata") or {}).get("namespace") or args.namespace
        pod_spec = pod.get("spec") or {}
        containers = (pod_spec.get("initContainers") or []) + (pod_spec.get("containers") or [])
        return namespace, containers, pod_spec

    pod_spec = {}
    if args.pull_secret:
        pod_spec["imagePullSecrets"] = [{"name": args.pull_secret}]
    return args.namespace, [{"name": args.image, "image": args.image}], pod_spec


def main(argv=None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.insecure:
        os.environ["REGISTRY_SKIP_VERIFY"] = "true"

    namespace, containers, pod_spec = load_targets(args)

    # only talk to the API server when there is a secret to read
    core_v1 = None
    if pod_spec.get("imagePullSecrets"):
        try:
            core_v1 = load_core_v1()
        except ConfigException as e:
            print(f"[!] Error: cannot load Kubernetes configuration: {e}")
            return 1

    results = {}
    try:
        for container in containers:
            name = container.get("name") or container.get("image")
            results[name] = get_entrypoint_cmd(core_v1, namespace, container, pod_spec).to_dict()
    except ResolutionError as e:
        print(f"[!] Error: {e}")
        return 1

    print(json.dumps(results, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
