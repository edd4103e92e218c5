GAME_ROOM = "game_{game_id}" # per-game broadcast group
USER_ROOM = "user_{user_id}" # per-user direct-message group


def game_room_name(game_id) -> str:
    return GAME_ROOM.format(game_id=game_id)


def user_room_name(user_id) -> str:
    return USER_ROOM.format(user_id=user_id)
