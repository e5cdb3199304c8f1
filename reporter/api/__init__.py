from reporter.api.broadcaster import EventBroadcaster, Subscription
from reporter.api.app import create_app
