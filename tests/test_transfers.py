from base64 import b64decode
from unittest.mock import Mock

import pytest
import requests
from Crypto.Cipher import PKCS1_OAEP
from Crypto.Hash import SHA1

from wechat_transfer.credentials import CredentialStore
from wechat_transfer.exceptions import (
    ConfigurationError,
    EncryptionError,
    FieldTooLongError,
    ProtocolError,
    TransportError,
    UnknownMerchantError,
    ValidationError,
)
from wechat_transfer.sign import verify_sign
from wechat_transfer.transfer import (
    BusinessFailure,
    CreateTransfer,
    ProtocolFailure,
    QueryBankTransfer,
    QueryTransfer,
    Success,
    TransferToBank,
    TransportFailure,
)
from wechat_transfer.transfer.constants import API_CONFIGS
from wechat_transfer.transport import ClientCertAdapter, SecureTransport, xml_to_dict

from .helpers import (
    MCH_ID_A,
    MCH_ID_B,
    SIGN_KEY_A,
    SIGN_KEY_B,
    SUCCESS_RESPONSE,
    FakeTransport,
    raw_response,
    xml_response,
)


def peer_kwargs(**overrides):
    kwargs = {
        "merchant_key": 1,
        "partner_trade_no": "T20261017000001",
        "openid": "oxTWIuGaIt6gTKsQRLau2M0yL16E",
        "amount": "12.34",
        "desc": "活动奖励",
    }
    kwargs.update(overrides)
    return kwargs


def bank_kwargs(**overrides):
    kwargs = {
        "merchant_key": 1,
        "partner_trade_no": "B20261017000001",
        "bank_no": "6225760008219524",
        "true_name": "张三",
        "bank_code": "1002",
        "amount": "100.00",
        "desc": "劳务报酬",
    }
    kwargs.update(overrides)
    return kwargs


class TestCreateTransfer:
    def test_success(self, store, fake_transport):
        result = CreateTransfer(store, fake_transport).create_transfer_order(**peer_kwargs())

        assert isinstance(result, Success)
        assert result.payment_no == SUCCESS_RESPONSE["payment_no"]

        envelope, merchant, url = fake_transport.sent[0]
        assert url == API_CONFIGS["create_transfer"]["url"]
        assert merchant.mch_id == MCH_ID_A
        signed = envelope.as_dict()
        assert signed["mchid"] == MCH_ID_A
        assert signed["mch_appid"] == "wxd930ea5d5a258f4f"
        assert signed["amount"] == "1234"
        assert signed["check_name"] == "NO_CHECK"
        assert verify_sign(signed, SIGN_KEY_A)

    def test_real_name_check(self, store, fake_transport):
        CreateTransfer(store, fake_transport).create_transfer_order(**peer_kwargs(re_user_name="张三"))

        signed = fake_transport.sent[0][0].as_dict()
        assert signed["check_name"] == "FORCE_CHECK"
        assert signed["re_user_name"] == "张三"

    def test_bound_app_id(self, store, fake_transport):
        CreateTransfer(store, fake_transport).create_transfer_order(**peer_kwargs(app_key=2))

        signed = fake_transport.sent[0][0].as_dict()
        assert signed["mch_appid"] == "wx8888888888888888"
        assert signed["mchid"] == MCH_ID_A
        assert verify_sign(signed, SIGN_KEY_A)

    def test_unknown_app_key_sends_nothing(self, store, fake_transport):
        with pytest.raises(ConfigurationError):
            CreateTransfer(store, fake_transport).create_transfer_order(**peer_kwargs(app_key=5))
        assert fake_transport.sent == []

    def test_second_merchant_signs_with_its_own_key(self, store, fake_transport):
        CreateTransfer(store, fake_transport).create_transfer_order(**peer_kwargs(merchant_key=2))

        signed = fake_transport.sent[0][0].as_dict()
        assert signed["mchid"] == MCH_ID_B
        assert verify_sign(signed, SIGN_KEY_B)
        assert not verify_sign(signed, SIGN_KEY_A)

    def test_insufficient_balance(self, store):
        transport = FakeTransport(
            response={
                "return_code": "SUCCESS",
                "result_code": "FAIL",
                "err_code": "NOTENOUGH",
                "err_code_des": "余额不足",
            }
        )
        result = CreateTransfer(store, transport).create_transfer_order(**peer_kwargs())

        assert isinstance(result, BusinessFailure)
        assert result.code == "NOTENOUGH"
        assert not result.retryable

    def test_system_error_is_retryable(self, store):
        transport = FakeTransport(
            response={"return_code": "SUCCESS", "result_code": "FAIL", "err_code": "SYSTEMERROR"}
        )
        result = CreateTransfer(store, transport).create_transfer_order(**peer_kwargs())

        assert isinstance(result, BusinessFailure)
        assert result.retryable

    def test_signature_rejected(self, store):
        transport = FakeTransport(response={"return_code": "FAIL", "return_msg": "签名错误"})
        result = CreateTransfer(store, transport).create_transfer_order(**peer_kwargs())

        assert isinstance(result, ProtocolFailure)
        assert result.reason == "签名错误"

    def test_transport_error_becomes_result(self, store):
        transport = FakeTransport(error=TransportError("请求超时"))
        result = CreateTransfer(store, transport).create_transfer_order(**peer_kwargs())

        assert isinstance(result, TransportFailure)
        assert "请求超时" in result.cause

    def test_protocol_error_keeps_raw_body(self, store):
        transport = FakeTransport(error=ProtocolError("响应报文不是合法的XML", raw="<xml><return"))
        result = CreateTransfer(store, transport).create_transfer_order(**peer_kwargs())

        assert isinstance(result, ProtocolFailure)
        assert result.raw == "<xml><return"

    def test_unknown_merchant_sends_nothing(self, store, fake_transport):
        with pytest.raises(UnknownMerchantError):
            CreateTransfer(store, fake_transport).create_transfer_order(**peer_kwargs(merchant_key=7))
        assert fake_transport.sent == []

    def test_invalid_request_sends_nothing(self, store, fake_transport):
        operation = CreateTransfer(store, fake_transport)
        with pytest.raises(FieldTooLongError):
            operation.create_transfer_order(**peer_kwargs(desc="奖" * 34))
        with pytest.raises(ValidationError):
            operation.create_transfer_order(**peer_kwargs(amount="0"))
        assert fake_transport.sent == []


class TestTransferToBank:
    def test_sensitive_fields_are_encrypted_before_signing(self, store, fake_transport, provider_key):
        result = TransferToBank(store, fake_transport).transfer_to_bank_card(**bank_kwargs())
        assert isinstance(result, Success)

        envelope, _, url = fake_transport.sent[0]
        assert url == API_CONFIGS["transfer_to_bank"]["url"]
        signed = envelope.as_dict()
        assert signed["mch_id"] == MCH_ID_A
        assert signed["amount"] == "10000"
        assert signed["enc_bank_no"] != "6225760008219524"
        assert signed["enc_true_name"] != "张三"
        assert "6225760008219524" not in envelope.to_xml()
        assert verify_sign(signed, SIGN_KEY_A)

        cipher = PKCS1_OAEP.new(provider_key, hashAlgo=SHA1)
        assert cipher.decrypt(b64decode(signed["enc_bank_no"])).decode("utf-8") == "6225760008219524"
        assert cipher.decrypt(b64decode(signed["enc_true_name"])).decode("utf-8") == "张三"

    def test_missing_public_key_sends_nothing(self, store, fake_transport):
        # 商户2未配置微信支付公钥
        with pytest.raises(EncryptionError):
            TransferToBank(store, fake_transport).transfer_to_bank_card(**bank_kwargs(merchant_key=2))
        assert fake_transport.sent == []

    def test_missing_bank_no_sends_nothing(self, store, fake_transport):
        with pytest.raises(EncryptionError):
            TransferToBank(store, fake_transport).transfer_to_bank_card(**bank_kwargs(bank_no=""))
        assert fake_transport.sent == []

    def test_invalid_public_key_sends_nothing(self, merchant_a, fake_transport):
        store = CredentialStore([merchant_a])
        # 绕过加载时的校验，模拟运行期间公钥失效
        object.__setattr__(merchant_a, "public_key", b"broken")
        with pytest.raises(EncryptionError):
            TransferToBank(store, fake_transport).transfer_to_bank_card(**bank_kwargs())
        assert fake_transport.sent == []


class TestQueries:
    def test_query_transfer(self, store):
        transport = FakeTransport(
            response={**SUCCESS_RESPONSE, "detail_id": "1000000000201503283103439304", "status": "SUCCESS"}
        )
        result = QueryTransfer(store, transport).query_transfer_order("T20261017000001", 1)

        assert isinstance(result, Success)
        assert result.status == "SUCCESS"
        envelope, _, url = transport.sent[0]
        assert url == API_CONFIGS["query_transfer"]["url"]
        signed = envelope.as_dict()
        assert signed["appid"] == "wxd930ea5d5a258f4f"
        assert signed["mch_id"] == MCH_ID_A
        assert signed["partner_trade_no"] == "T20261017000001"

    @pytest.mark.parametrize("status", ["PROCESSING", "SUCCESS", "FAILED", "BANK_FAIL"])
    def test_query_bank_transfer_statuses(self, store, status):
        transport = FakeTransport(response={**SUCCESS_RESPONSE, "status": status, "reason": "卡号错误"})
        result = QueryBankTransfer(store, transport).query_bank_transfer("B20261017000001", 2)

        assert isinstance(result, Success)
        assert result.status == status
        signed = transport.sent[0][0].as_dict()
        assert signed["mch_id"] == MCH_ID_B
        assert set(signed) == {"mch_id", "nonce_str", "partner_trade_no", "sign"}

    def test_order_not_found(self, store):
        transport = FakeTransport(
            response={
                "return_code": "SUCCESS",
                "result_code": "FAIL",
                "err_code": "ORDERNOTEXIST",
                "err_code_des": "订单不存在",
            }
        )
        result = QueryBankTransfer(store, transport).query_bank_transfer("B20261017000001", 1)
        assert isinstance(result, BusinessFailure)
        assert result.code == "ORDERNOTEXIST"


class TestOverSecureTransport:
    """使用真实的 SecureTransport，只替换 HTTP 请求"""

    @pytest.fixture
    def post(self, monkeypatch):
        mock = Mock(return_value=xml_response(**SUCCESS_RESPONSE))
        monkeypatch.setattr(requests.Session, "post", mock)
        return mock

    def test_success(self, store, post):
        result = CreateTransfer(store, SecureTransport()).create_transfer_order(**peer_kwargs())

        assert isinstance(result, Success)
        body = xml_to_dict(post.call_args.kwargs["data"])
        assert body["mchid"] == MCH_ID_A
        assert verify_sign(body, SIGN_KEY_A)

    def test_connection_reset(self, store, post):
        post.side_effect = requests.ConnectionError("Connection reset by peer")
        result = CreateTransfer(store, SecureTransport()).create_transfer_order(**peer_kwargs())
        assert isinstance(result, TransportFailure)

    def test_timeout(self, store, post):
        post.side_effect = requests.ReadTimeout("read timed out")
        result = TransferToBank(store, SecureTransport()).transfer_to_bank_card(**bank_kwargs())
        assert isinstance(result, TransportFailure)

    def test_http_500(self, store, post):
        post.return_value = raw_response(b"Internal Server Error", status_code=500)
        result = QueryTransfer(store, SecureTransport()).query_transfer_order("T20261017000001", 1)
        assert isinstance(result, TransportFailure)

    def test_truncated_response(self, store, post):
        post.return_value = raw_response(b"<xml><return_code>SUCCESS</return_code><result_")
        result = CreateTransfer(store, SecureTransport()).create_transfer_order(**peer_kwargs())

        assert isinstance(result, ProtocolFailure)
        assert result.raw.startswith("<xml><return_code>")

    def test_nested_response(self, store, post):
        post.return_value = raw_response(b"<xml><return_code><a>SUCCESS</a></return_code></xml>")
        result = QueryBankTransfer(store, SecureTransport()).query_bank_transfer("B20261017000001", 1)
        assert isinstance(result, ProtocolFailure)

    def test_each_merchant_uses_its_own_certificate(self, store, post, monkeypatch):
        contexts = []

        def mount(session, prefix, adapter):
            if isinstance(adapter, ClientCertAdapter):
                contexts.append(adapter._ssl_context)

        monkeypatch.setattr(requests.Session, "mount", mount)
        operation = CreateTransfer(store, SecureTransport())
        operation.create_transfer_order(**peer_kwargs(merchant_key=1))
        operation.create_transfer_order(**peer_kwargs(merchant_key=2))
        operation.create_transfer_order(**peer_kwargs(merchant_key=1))

        assert contexts[0] is contexts[2]
        assert contexts[0] is not contexts[1]

