import datetime
from unittest.mock import Mock

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

from wechat_transfer.transport import dict_to_xml

MCH_ID_A = "1900000109"
MCH_ID_B = "1900000110"
SIGN_KEY_A = "192006250b4c09247ec02edce69f6a2d"
SIGN_KEY_B = "5ae2f1a93b7c4e0d8f6a1b2c3d4e5f60"

SUCCESS_RESPONSE = {
    "return_code": "SUCCESS",
    "return_msg": "",
    "result_code": "SUCCESS",
    "partner_trade_no": "T20261017000001",
    "payment_no": "1000018301201505190181489473",
    "payment_time": "2026-10-17 15:26:59",
}


def make_client_cert(common_name: str, password: str) -> bytes:
    """生成自签名的 PKCS#12 商户API证书"""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )
    return pkcs12.serialize_key_and_certificates(
        b"apiclient", key, cert, None, serialization.BestAvailableEncryption(password.encode("utf-8"))
    )


def xml_response(status_code=200, **fields) -> Mock:
    """返回 XML 报文的 requests.Response"""
    resp = Mock()
    resp.status_code = status_code
    resp.content = dict_to_xml(fields).encode("utf-8")
    return resp


def raw_response(content: bytes, status_code=200) -> Mock:
    resp = Mock()
    resp.status_code = status_code
    resp.content = content
    return resp


class FakeTransport:
    """记录发送的报文，返回预设响应或抛出预设异常"""

    def __init__(self, response=None, error=None):
        self.response = response or {}
        self.error = error
        self.sent = []

    def send(self, envelope, merchant, url):
        self.sent.append((envelope, merchant, url))
        if self.error is not None:
            raise self.error
        return dict(self.response)
