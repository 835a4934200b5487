from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from conftest import docker_config_secret, make_response
from entryresolver.modules.errors import ManifestNotFoundError, MissingTagError, SecretNotFoundError
from entryresolver.modules.finders import ContainerImageConfig
from entryresolver.modules.resolver import get_entrypoint_cmd, load_core_v1


def pod_with(image, secrets=()):
    container = client.V1Container(name="app", image=image)
    pod_spec = client.V1PodSpec(
        containers=[container],
        image_pull_secrets=[client.V1LocalObjectReference(name=s) for s in secrets] or None,
    )
    return container, pod_spec


@pytest.fixture
def fetch():
    with patch("entryresolver.modules.resolver.fetch_entrypoint_cmd") as fetch:
        fetch.return_value = ContainerImageConfig(entrypoint=["/entrypoint.sh"], cmd=["serve"])
        yield fetch


class TestGetEntrypointCmd:

    def test_private_registry_prefix_stripped(self, core_v1, fetch):
        core_v1.read_namespaced_secret.return_value = MagicMock(
            data=docker_config_secret({"myregistry.io": {"username": "u", "password": "p"}})
        )
        container, pod_spec = pod_with("myregistry.io/app:2.0", secrets=["regcred"])

        result = get_entrypoint_cmd(core_v1, "team", container, pod_spec)

        assert result == ContainerImageConfig(entrypoint=["/entrypoint.sh"], cmd=["serve"])
        args = fetch.call_args.args
        assert args == ("https://myregistry.io", "u", "p", "app", "2.0")

    def test_no_pull_secret_uses_dockerhub(self, core_v1, fetch):
        container, pod_spec = pod_with("nginx:1.19")

        get_entrypoint_cmd(core_v1, "team", container, pod_spec)

        assert fetch.call_args.args == ("https://registry-1.docker.io/", "", "", "library/nginx", "1.19")
        core_v1.read_namespaced_secret.assert_not_called()

    def test_only_first_pull_secret_consulted(self, core_v1, fetch):
        core_v1.read_namespaced_secret.return_value = MagicMock(
            data=docker_config_secret({"myregistry.io": {"username": "u", "password": "p"}})
        )
        container, pod_spec = pod_with("myregistry.io/app:2.0", secrets=["first", "second"])

        get_entrypoint_cmd(core_v1, "team", container, pod_spec)

        core_v1.read_namespaced_secret.assert_called_once()
        assert core_v1.read_namespaced_secret.call_args.kwargs["name"] == "first"

    def test_image_from_other_registry_left_intact(self, core_v1, fetch):
        core_v1.read_namespaced_secret.return_value = MagicMock(
            data=docker_config_secret({"myregistry.io": {"username": "u", "password": "p"}})
        )
        container, pod_spec = pod_with("myapp:1.0", secrets=["regcred"])

        get_entrypoint_cmd(core_v1, "team", container, pod_spec)

        assert fetch.call_args.args[3:] == ("myapp", "1.0")

    def test_admission_request_dicts(self, core_v1, fetch):
        core_v1.read_namespaced_secret.return_value = MagicMock(
            data=docker_config_secret({"https://myregistry.io": {"username": "u", "password": "p"}})
        )
        container = {"name": "app", "image": "myregistry.io/team/app:2.0"}
        pod_spec = {"containers": [container], "imagePullSecrets": [{"name": "regcred"}]}

        get_entrypoint_cmd(core_v1, "team", container, pod_spec)

        assert fetch.call_args.args == ("https://myregistry.io", "u", "p", "team/app", "2.0")

    def test_missing_tag(self, core_v1, fetch):
        container, pod_spec = pod_with("nginx")

        with pytest.raises(MissingTagError):
            get_entrypoint_cmd(core_v1, "team", container, pod_spec)
        fetch.assert_not_called()

    def test_secret_errors_propagate(self, core_v1, fetch):
        core_v1.read_namespaced_secret.side_effect = ApiException(status=404, reason="Not Found")
        container, pod_spec = pod_with("myregistry.io/app:2.0", secrets=["regcred"])

        with pytest.raises(SecretNotFoundError):
            get_entrypoint_cmd(core_v1, "team", container, pod_spec)
        fetch.assert_not_called()

    def test_registry_errors_propagate(self, core_v1, fetch):
        fetch.side_effect = ManifestNotFoundError("HTTP 404")
        container, pod_spec = pod_with("nginx:1.19")

        with pytest.raises(ManifestNotFoundError):
            get_entrypoint_cmd(core_v1, "team", container, pod_spec)


class TestEndToEnd:

    def test_private_registry_round_trip(self, core_v1, registry):
        core_v1.read_namespaced_secret.return_value = MagicMock(
            data=docker_config_secret({"myregistry.io": {"username": "u", "password": "p"}})
        )
        registry.add("https://myregistry.io/v2/", make_response(200, json_body={}))
        registry.add(
            "https://myregistry.io/v2/app/manifests/2.0",
            make_response(200, json_body={"config": {"digest": "sha256:abc"}}),
        )
        registry.add(
            "https://myregistry.io/v2/app/blobs/sha256:abc",
            make_response(200, json_body={"config": {"Cmd": ["nginx", "-g", "daemon off;"], "Entrypoint": []}}),
        )
        container, pod_spec = pod_with("myregistry.io/app:2.0", secrets=["regcred"])

        result = get_entrypoint_cmd(core_v1, "team", container, pod_spec)

        assert result.cmd == ["nginx", "-g", "daemon off;"]
        assert result.entrypoint == []

    def test_manifest_failure_returns_nothing(self, core_v1, registry):
        registry.add("https://registry-1.docker.io/v2/", make_response(200, json_body={}))
        container, pod_spec = pod_with("nginx:1.19")

        with pytest.raises(ManifestNotFoundError):
            get_entrypoint_cmd(core_v1, "team", container, pod_spec)


class TestLoadCoreV1:

    def test_prefers_in_cluster_config(self):
        with patch("kubernetes.config.load_incluster_config") as incluster, \
                patch("kubernetes.config.load_kube_config") as kubeconfig, \
                patch("kubernetes.client.ApiClient"), \
                patch("kubernetes.client.CoreV1Api") as api:
            assert load_core_v1() is api.return_value
        incluster.assert_called_once()
        kubeconfig.assert_not_called()

    def test_secret_reads_are_not_retried(self):
        with patch("kubernetes.config.load_incluster_config"), \
                patch("kubernetes.client.ApiClient") as api_client, \
                patch("kubernetes.client.CoreV1Api") as api:
            load_core_v1()
        configuration = api_client.call_args.args[0]
        assert configuration.retries == 0
        api.assert_called_once_with(api_client.return_value)

    def test_falls_back_to_kubeconfig(self):
        from kubernetes.config.config_exception import ConfigException

        with patch("kubernetes.config.load_incluster_config", side_effect=ConfigException("no sa")), \
                patch("kubernetes.config.load_kube_config") as kubeconfig, \
                patch("kubernetes.client.ApiClient"), \
                patch("kubernetes.client.CoreV1Api"):
            load_core_v1()
        kubeconfig.assert_called_once()
