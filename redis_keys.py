import os

REDIS_COMMAND_CHANNEL = os.getenv("REDIS_COMMAND_CHANNEL", "relay:commands") # pub/sub channel for broadcast commands

# **Command message (JSON string published on `relay:commands`)**
# - `room` = target room name, e.g. `game_123` or `user_42`
# - `event` = outbound event name, e.g. `game_comment_new`
# - `data` = payload passed through unchanged to every room member
