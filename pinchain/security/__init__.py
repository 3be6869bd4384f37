"""pinchain.security

Guards at the edges where operator config reaches the network.
"""

from .ssrf import FeedUrlCheck, check_feed_url

__all__ = ["FeedUrlCheck", "check_feed_url"]
