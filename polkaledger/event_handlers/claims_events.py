from typing import List

from polkaledger.context import EventContext
from polkaledger.errors import InvalidAmountError
from polkaledger.event_handlers.abstract_event_handler import AbstractEventHandler
from polkaledger.event_handlers.utils import event_error_handling
from polkaledger.models.transaction import Transaction
from polkaledger.utils import to_int, to_str


class ClaimsEventHandler(AbstractEventHandler):

    @event_error_handling(InvalidAmountError)
    def handle_claimed(self, context: EventContext) -> List[Transaction]:
        """
        claims.Claimed(account, ethereum_address, amount)
        DOT claimed from the ethereum allocation, the ethereum address goes to addData
        """
        data = context.event.data
        entry = self.create_entry(
            context, context.event_id(), context.event.method,
            add_data=to_str(data[1]),
            recipient_id=to_str(data[0]),
            amount=to_int(data[2])
        )
        return [self.check_amount(entry)]
