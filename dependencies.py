from fastapi import Request

from relay import ChannelRelay


def get_relay(request: Request) -> ChannelRelay:
    return request.app.state.relay
