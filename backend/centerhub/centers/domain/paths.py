"""Key layout of the keyed-tree store.

centers/{center_id}                      center record, members, codes
centers/{center_id}/{feature}/...        feature subtrees
center_profiles/{center_id}/{user_id}    per-center profile
users/{user_id}                          global profile
notifications/{user_id}/{notification}   recipient-owned notifications
centers/{center_id}/posts/{post}        posts with reactions
centers/{center_id}/post_comments/{post} comments per post
access_codes/{code}                      join code index
"""

from __future__ import annotations

from centerhub.infra.tree import join_path

CENTERS = "centers"
CENTER_PROFILES = "center_profiles"
USERS = "users"
NOTIFICATIONS = "notifications"
ACCESS_CODES = "access_codes"

FINANCES = "finances"
COMPETITION = "competition"
WORKSHOPS = "workshops"
SURVEYS = "surveys"
FORUMS = "forums"
ANONYMOUS_CHAT = "anonymous_chat"
POSTS = "posts"
POST_COMMENTS = "post_comments"

FEATURES = (FINANCES, COMPETITION, WORKSHOPS, SURVEYS, FORUMS, ANONYMOUS_CHAT)


def center(center_id: str) -> str:
	return join_path(CENTERS, center_id)


def members(center_id: str) -> str:
	return join_path(CENTERS, center_id, "members")


def feature(center_id: str, name: str, *rest: str) -> str:
	return join_path(CENTERS, center_id, name, *rest)


def permissions(center_id: str, name: str) -> str:
	return feature(center_id, name, "permissions")


def center_profiles(center_id: str) -> str:
	return join_path(CENTER_PROFILES, center_id)


def center_profile(center_id: str, user_id: str) -> str:
	return join_path(CENTER_PROFILES, center_id, user_id)


def user(user_id: str) -> str:
	return join_path(USERS, user_id)


def notifications(user_id: str) -> str:
	return join_path(NOTIFICATIONS, user_id)


def notification(user_id: str, notification_id: str) -> str:
	return join_path(NOTIFICATIONS, user_id, notification_id)


def access_code(code: str) -> str:
	return join_path(ACCESS_CODES, code)
