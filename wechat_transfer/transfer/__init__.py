from .create_transfer import CreateTransfer
from .models import (
    BankCardQuery,
    BankCardTransfer,
    BusinessFailure,
    PeerTransfer,
    PeerTransferQuery,
    ProtocolFailure,
    Success,
    TransferResult,
    TransportFailure,
)
from .query_transfer import QueryBankTransfer, QueryTransfer
from .transfer_to_bank import TransferToBank
