"""查询企业付款结果"""

from .base import TransferBase
from .constants import BANK_TRANSFER_STATUS_MAP, TRANSFER_STATUS_MAP
from .models import BankCardQuery, PeerTransferQuery, TransferResult


class QueryTransfer(TransferBase):
    """查询企业付款到零钱"""

    api_name = "query_transfer"
    status_map = TRANSFER_STATUS_MAP

    def query_transfer_order(self, partner_trade_no: str, merchant_key: int, app_key: int = None) -> TransferResult:
        """
        查询付款到零钱的结果，返回 Success 时 status 为 SUCCESS/FAILED/PROCESSING

        app_key 需与付款时使用的应用编号一致

        Note:
            此接口不会自动重试，查询失败不影响付款状态，调用方可自行决定是否再次查询
        """
        return self.execute(
            PeerTransferQuery(merchant_key=merchant_key, partner_trade_no=partner_trade_no, app_key=app_key)
        )


class QueryBankTransfer(TransferBase):
    """查询企业付款到银行卡"""

    api_name = "query_bank_transfer"
    status_map = BANK_TRANSFER_STATUS_MAP

    def query_bank_transfer(self, partner_trade_no: str, merchant_key: int) -> TransferResult:
        """
        查询付款到银行卡的结果

        返回 Success 时 data 包含:
            payment_no      微信企业付款单号
            bank_no_md5     收款用户银行卡号(MD5)
            true_name_md5   收款人真实姓名(MD5)
            amount          代付金额(分)
            status          PROCESSING/SUCCESS/FAILED/BANK_FAIL
            cmms_amt        手续费金额(分)
            create_time     微信侧订单创建时间
            pay_succ_time   微信侧付款成功时间(可选)
            reason          失败原因(可选)
        """
        return self.execute(BankCardQuery(merchant_key=merchant_key, partner_trade_no=partner_trade_no))
