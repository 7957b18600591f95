import pytest
from Crypto.PublicKey import RSA

from wechat_transfer.credentials import CredentialStore, MerchantContext

from .helpers import (
    MCH_ID_A,
    MCH_ID_B,
    SIGN_KEY_A,
    SIGN_KEY_B,
    SUCCESS_RESPONSE,
    FakeTransport,
    make_client_cert,
)


@pytest.fixture(scope="session")
def provider_key():
    """微信支付 RSA 密钥对，私钥用于在测试中解密"""
    return RSA.generate(2048)


@pytest.fixture(scope="session")
def provider_public_pem(provider_key):
    return provider_key.publickey().export_key()


@pytest.fixture(scope="session")
def client_cert_a():
    return make_client_cert(MCH_ID_A, MCH_ID_A)


@pytest.fixture(scope="session")
def client_cert_b():
    return make_client_cert(MCH_ID_B, "cert-password-b")


@pytest.fixture
def merchant_a(client_cert_a, provider_public_pem):
    return MerchantContext(
        merchant_key=1,
        mch_id=MCH_ID_A,
        sign_key=SIGN_KEY_A,
        client_cert=client_cert_a,
        cert_password=MCH_ID_A,
        public_key=provider_public_pem,
        app_id="wxd930ea5d5a258f4f",
        spbill_create_ip="192.168.0.1",
        app_ids={2: "wx8888888888888888"},
    )


@pytest.fixture
def merchant_b(client_cert_b):
    return MerchantContext(
        merchant_key=2,
        mch_id=MCH_ID_B,
        sign_key=SIGN_KEY_B,
        client_cert=client_cert_b,
        cert_password="cert-password-b",
        app_id="wx2421b1c4370ec43b",
    )


@pytest.fixture
def store(merchant_a, merchant_b):
    return CredentialStore([merchant_a, merchant_b])


@pytest.fixture
def fake_transport():
    return FakeTransport(response=SUCCESS_RESPONSE)
