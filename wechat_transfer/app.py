"""企业付款 HTTP 接口"""

from flask import Flask, jsonify, request
from loguru import logger

from .config import DEFAULT_MERCHANT, load_config
from .credentials import CredentialStore
from .exceptions import ValidationError, WeChatTransferError
from .logging_setup import configure_logging
from .transfer import CreateTransfer, QueryBankTransfer, QueryTransfer, TransferToBank
from .transport import SecureTransport

# 请求日志中需要隐藏的字段
SENSITIVE_REQUEST_FIELDS = {"bank_no", "true_name", "re_user_name"}


def _masked(data):
    return {key: "***" if key in SENSITIVE_REQUEST_FIELDS else value for key, value in data.items()}


def _merchant_key(data):
    merchant_key = data.get("merchant_key", DEFAULT_MERCHANT)
    if isinstance(merchant_key, bool) or not isinstance(merchant_key, int):
        raise ValidationError(f"商户编号必须为整数: {merchant_key!r}")
    return merchant_key


def _json_body():
    """请求体必须是 JSON 对象"""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("请求体必须为JSON对象")
    return data


def _app_key(data):
    app_key = data.get("app_key")
    if app_key is not None and (isinstance(app_key, bool) or not isinstance(app_key, int)):
        raise ValidationError(f"应用编号必须为整数: {app_key!r}")
    return app_key


def _require(data, *names):
    missing = [name for name in names if data.get(name) is None or data.get(name) == ""]
    if missing:
        logger.warning(f"请求缺少必要参数: {', '.join(missing)}")
        return jsonify({"code": -1, "msg": f"缺少必要参数: {', '.join(missing)}"}), 400
    return None


def create_app(credential_store=None, transport=None):
    """创建 Flask 应用，未传入凭证仓库时从环境变量加载配置"""
    if credential_store is None:
        config = load_config()
        credential_store = CredentialStore.from_config(config)
        transport = transport or SecureTransport(config.timeout)

    app = Flask(__name__)
    create_transfer = CreateTransfer(credential_store, transport)
    transfer_to_bank = TransferToBank(credential_store, transport)
    query_transfer = QueryTransfer(credential_store, transport)
    query_bank_transfer = QueryBankTransfer(credential_store, transport)

    @app.errorhandler(WeChatTransferError)
    def handle_transfer_error(e):
        logger.warning(f"请求被拒绝: {str(e)}")
        return jsonify({"code": -1, "msg": str(e)}), 400

    @app.route("/transfer", methods=["POST"])
    def transfer():
        """企业付款到零钱"""
        data = _json_body()
        logger.info(f"收到付款到零钱请求: {_masked(data)}")
        error = _require(data, "partner_trade_no", "openid", "amount", "desc")
        if error:
            return error

        result = create_transfer.create_transfer_order(
            merchant_key=_merchant_key(data),
            partner_trade_no=data["partner_trade_no"],
            openid=data["openid"],
            amount=data["amount"],
            desc=data["desc"],
            re_user_name=data.get("re_user_name"),
            device_info=data.get("device_info"),
            app_key=_app_key(data),
        )
        logger.info(f"付款到零钱结果: {result.to_dict()['msg']}")
        return jsonify(result.to_dict())

    @app.route("/transfer_to_bank", methods=["POST"])
    def bank_transfer():
        """企业付款到银行卡"""
        data = _json_body()
        logger.info(f"收到付款到银行卡请求: {_masked(data)}")
        error = _require(data, "partner_trade_no", "bank_no", "true_name", "bank_code", "amount", "desc")
        if error:
            return error

        result = transfer_to_bank.transfer_to_bank_card(
            merchant_key=_merchant_key(data),
            partner_trade_no=data["partner_trade_no"],
            bank_no=data["bank_no"],
            true_name=data["true_name"],
            bank_code=data["bank_code"],
            amount=data["amount"],
            desc=data["desc"],
        )
        logger.info(f"付款到银行卡结果: {result.to_dict()['msg']}")
        return jsonify(result.to_dict())

    @app.route("/query_transfer", methods=["POST"])
    def transfer_query():
        """查询付款到零钱结果"""
        data = _json_body()
        logger.info(f"收到付款查询请求: {data}")
        error = _require(data, "partner_trade_no")
        if error:
            return error

        result = query_transfer.query_transfer_order(
            data["partner_trade_no"], _merchant_key(data), _app_key(data)
        )
        return jsonify(result.to_dict())

    @app.route("/query_bank_transfer", methods=["POST"])
    def bank_transfer_query():
        """查询付款到银行卡结果"""
        data = _json_body()
        logger.info(f"收到银行卡付款查询请求: {data}")
        error = _require(data, "partner_trade_no")
        if error:
            return error

        result = query_bank_transfer.query_bank_transfer(data["partner_trade_no"], _merchant_key(data))
        return jsonify(result.to_dict())

    return app


if __name__ == "__main__":
    configure_logging()
    create_app().run(
        debug=False,
        host="127.0.0.1",  # 只监听本地
        port=5000,
    )
