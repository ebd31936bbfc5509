import base64

import pytest
import yaml

from kanrigate.errors import EncodingError, MalformedCredential, NotFound
from kanrigate.kubeconfig import build_kubeconfig, dump_kubeconfig

CA_CERT = b"-----BEGIN CERTIFICATE-----\nMIIBszCCAVmgAwIBAgIJ\n-----END CERTIFICATE-----\n"


@pytest.mark.asyncio
async def test_generate_kubeconfig(generator, cluster_state):
    cluster_state.add_token_secret("bob-token", "bob", data={"token": b"abc", "ca.crt": CA_CERT})

    document = await generator.generate("bob", "team-a", "prod", "https://10.0.0.1:6443")

    assert document["apiVersion"] == "v1"
    assert document["kind"] == "Config"
    assert document["current-context"] == "bob-team-a@prod"
    assert document["users"] == [{"name": "bob", "user": {"token": "abc"}}]
    assert document["clusters"] == [
        {
            "name": "prod",
            "cluster": {
                "certificate-authority-data": base64.b64encode(CA_CERT).decode("ascii"),
                "server": "https://10.0.0.1:6443",
            },
        }
    ]
    assert document["contexts"] == [
        {
            "name": "bob-team-a@prod",
            "context": {"cluster": "prod", "namespace": "team-a", "user": "bob"},
        }
    ]


@pytest.mark.asyncio
async def test_generate_does_not_mutate(generator, cluster_state):
    cluster_state.add_token_secret("bob-token", "bob", data={"token": b"abc", "ca.crt": CA_CERT})

    await generator.generate("bob", "team-a", "prod", "https://10.0.0.1:6443")

    assert cluster_state.mutations == []


@pytest.mark.asyncio
async def test_missing_credential(generator, cluster_state):
    cluster_state.add_token_secret("alice-token", "alice", data={"token": b"abc", "ca.crt": CA_CERT})

    with pytest.raises(NotFound):
        await generator.generate("bob", "team-a", "prod", "https://10.0.0.1:6443")


@pytest.mark.parametrize(
    "data",
    [
        None,
        {},
        {"token": b"abc"},
        {"ca.crt": CA_CERT},
    ],
)
@pytest.mark.asyncio
async def test_incomplete_payload(generator, cluster_state, data):
    # A freshly created token Secret has no payload until the cluster fills it in
    cluster_state.add_token_secret("bob-token", "bob", data=data)

    with pytest.raises(MalformedCredential):
        await generator.generate("bob", "team-a", "prod", "https://10.0.0.1:6443")


@pytest.mark.asyncio
async def test_token_must_be_utf8(generator, cluster_state):
    cluster_state.add_token_secret("bob-token", "bob", data={"token": b"\xff\xfe", "ca.crt": CA_CERT})

    with pytest.raises(EncodingError):
        await generator.generate("bob", "team-a", "prod", "https://10.0.0.1:6443")


@pytest.mark.asyncio
async def test_undecodable_payload(generator, cluster_state):
    secret = cluster_state.add_token_secret("bob-token", "bob")
    secret.data = {"token": "not base64!", "ca.crt": base64.b64encode(CA_CERT).decode("ascii")}

    with pytest.raises(MalformedCredential):
        await generator.generate("bob", "team-a", "prod", "https://10.0.0.1:6443")


def test_dump_kubeconfig_keeps_key_order():
    document = build_kubeconfig("bob", "team-a", "prod", "https://10.0.0.1:6443", "abc", CA_CERT)

    rendered = dump_kubeconfig(document)

    top_level_keys = [line.split(":")[0] for line in rendered.splitlines() if line and not line[0].isspace() and not line.startswith("-")]
    assert top_level_keys == ["apiVersion", "kind", "clusters", "contexts", "current-context", "users"]
    assert yaml.safe_load(rendered) == document
