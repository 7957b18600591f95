"""企业付款相关常量配置"""

# 付款备注最大长度(UTF-8 字节)
MAX_DESC_BYTES = 100

# 商户订单号只能由数字、大小写字母组成，最多32位
PARTNER_TRADE_NO_PATTERN = r"[A-Za-z0-9]{1,32}"

# 设备号最大长度
MAX_DEVICE_INFO_LENGTH = 32

# 校验用户姓名选项
CHECK_NAME_NO_CHECK = "NO_CHECK"
CHECK_NAME_FORCE_CHECK = "FORCE_CHECK"

# 协议层/业务层返回码
RETURN_SUCCESS = "SUCCESS"
RESULT_SUCCESS = "SUCCESS"
RESULT_FAIL = "FAIL"

# 企业付款到零钱状态映射表(查询接口返回)
TRANSFER_STATUS_MAP = {
    "SUCCESS": "转账成功",
    "FAILED": "转账失败",
    "PROCESSING": "处理中",
}

# 企业付款到银行卡状态映射表(查询接口返回)
BANK_TRANSFER_STATUS_MAP = {
    "PROCESSING": "处理中",
    "SUCCESS": "付款成功",
    # 需要更换商户订单号重新发起付款
    "FAILED": "付款失败",
    # 订单状态由付款成功流转至退票，付款金额和手续费会自动退还
    "BANK_FAIL": "银行退票",
}

# 处理中状态，需要继续查询
PROCESSING_STATES = {
    "PROCESSING",
}

# 终态状态
FINAL_STATES = {
    "SUCCESS",
    "FAILED",
    "BANK_FAIL",
}

# 可使用原商户订单号重试的业务错误码，结果未明确前不能更换商户订单号
RETRIABLE_BIZ_CODES = {
    "SYSTEMERROR",  # 系统繁忙
    "FREQ_LIMIT",  # 超过频率限制
    "SEND_FAILED",  # 付款错误
    "RESOURCE_INSUFFICIENT",  # 资源不足
}

# 企业付款到银行卡支持的银行编码
BANK_CODES = {
    "1002": "工商银行",
    "1005": "农业银行",
    "1026": "中国银行",
    "1003": "建设银行",
    "1001": "招商银行",
    "1066": "邮储银行",
    "1020": "交通银行",
    "1004": "浦发银行",
    "1006": "民生银行",
    "1009": "兴业银行",
    "1010": "平安银行",
    "1021": "中信银行",
    "1025": "华夏银行",
    "1027": "广发银行",
    "1022": "光大银行",
    "1032": "北京银行",
    "1056": "宁波银行",
}

# API配置
API_CONFIGS = {
    "create_transfer": {
        # 接口请求地址
        "url": "https://api.mch.weixin.qq.com/mmpaymkttransfers/promotion/transfers",
        # 接口描述
        "desc": "企业付款到零钱",
    },
    "query_transfer": {
        "url": "https://api.mch.weixin.qq.com/mmpaymkttransfers/gettransferinfo",
        "desc": "查询企业付款到零钱",
    },
    "transfer_to_bank": {
        "url": "https://api.mch.weixin.qq.com/mmpaysptrans/pay_bank",
        "desc": "企业付款到银行卡",
    },
    "query_bank_transfer": {
        "url": "https://api.mch.weixin.qq.com/mmpaysptrans/query_bank",
        "desc": "查询企业付款到银行卡",
    },
}
