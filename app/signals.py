"""Application signals for collaborators reacting to sales activity."""
from blinker import Namespace

_signals = Namespace()

# Sent with order=<Order> after an order is committed
order_added = _signals.signal('order-added')

# Sent with kind=<'csv'|'backup'> and user=<AppUser> after an export is recorded
export_completed = _signals.signal('export-completed')
