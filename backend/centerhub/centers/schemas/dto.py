"""Pydantic schemas for the centers API."""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

_ROLE_PATTERN = "^(owner|admin-plus|admin|manager|student)$"
_TIER_PATTERN = "^(admin-plus|admin|student)$"


# --- centers & members ------------------------------------------------------

class CenterCreateRequest(BaseModel):
	name: str = Field(..., min_length=3, max_length=80)
	school_name: str = Field(..., min_length=3, max_length=120)
	country: str = Field(..., min_length=2, max_length=60)
	province: str = Field(default="", max_length=80)
	district: str = Field(default="", max_length=80)
	city: str = Field(default="", max_length=80)
	education_level: str = Field(default="", max_length=60)
	representative_animal: Optional[str] = Field(default=None, max_length=40)
	primary_color: str = Field(default="#1e40af", pattern="^#[0-9a-fA-F]{6}$")
	secondary_color: Optional[str] = Field(default=None, pattern="^#[0-9a-fA-F]{6}$")
	tertiary_color: Optional[str] = Field(default=None, pattern="^#[0-9a-fA-F]{6}$")
	courses: List[str] = Field(..., min_length=1, max_length=60)
	access_method_document: bool = False
	secondary_code: bool = False
	owner_course: Optional[str] = None
	owner_document_number: Optional[str] = Field(default=None, max_length=32)

	@field_validator("courses")
	@classmethod
	def _clean_courses(cls, value: List[str]) -> List[str]:
		cleaned = [item.strip() for item in value if item and item.strip()]
		if not cleaned:
			raise ValueError("at least one course is required")
		return list(dict.fromkeys(cleaned))


class CenterResponse(BaseModel):
	id: str
	name: str
	school_name: str
	country: str
	province: str = ""
	district: str = ""
	city: str = ""
	education_level: str = ""
	representative_animal: Optional[str] = None
	primary_color: str
	secondary_color: Optional[str] = None
	tertiary_color: Optional[str] = None
	courses: List[str]
	owner_id: str
	created_at: datetime
	access_method_document: bool = False
	member_count: int = 0
	my_role: str = Field(..., pattern=_ROLE_PATTERN)
	codes: Optional[Dict[str, str]] = None


class CenterListResponse(BaseModel):
	items: List[CenterResponse]


class AccessCodePreview(BaseModel):
	center_id: str
	center_name: str
	role: str = Field(..., pattern=_TIER_PATTERN)
	already_member: bool
	was_member: bool
	requires_document: bool
	document_type: Optional[str] = None
	courses: List[str]


class JoinRequest(BaseModel):
	code: str = Field(..., min_length=4, max_length=40)
	course: str = Field(..., min_length=1, max_length=80)
	document_number: Optional[str] = Field(default=None, max_length=32)


class MemberResponse(BaseModel):
	user_id: str
	role: str = Field(..., pattern=_ROLE_PATTERN)
	name: Optional[str] = None
	surname: Optional[str] = None
	username: Optional[str] = None
	photo_url: Optional[str] = None
	course: Optional[str] = None
	document_number: Optional[str] = None


class RosterResponse(BaseModel):
	items: List[MemberResponse]


class RoleChangeRequest(BaseModel):
	role: str = Field(..., pattern=_TIER_PATTERN)


class MyRoleResponse(BaseModel):
	center_id: str
	role: str = Field(..., pattern=_ROLE_PATTERN)
	features: Dict[str, str] = Field(default_factory=dict)


class DeleteCenterResponse(BaseModel):
	deleted: bool
	notified: int
	failed: List[str] = Field(default_factory=list)


# --- profiles ----------------------------------------------------------------

class ProfileUpdateRequest(BaseModel):
	name: str = Field(..., min_length=1, max_length=60)
	surname: str = Field(default="", max_length=60)
	username: str = Field(..., min_length=3, max_length=30, pattern="^[A-Za-z0-9_.]+$")
	photo_url: Optional[str] = Field(default=None, max_length=500)


class ProfileResponse(BaseModel):
	user_id: str
	name: Optional[str] = None
	surname: Optional[str] = None
	username: Optional[str] = None
	photo_url: Optional[str] = None


class CenterProfileResponse(BaseModel):
	center_id: str
	user_id: str
	course: Optional[str] = None
	document_type: Optional[str] = None
	document_number: Optional[str] = None


# --- posts -------------------------------------------------------------------

class PostCreateRequest(BaseModel):
	content: str = Field(..., min_length=5, max_length=2000)


class PostResponse(BaseModel):
	id: str
	author_id: str
	author_name: str
	author_photo_url: Optional[str] = None
	content: str
	created_at: datetime
	likes: int = 0
	dislikes: int = 0
	my_reaction: Optional[str] = None
	comments_count: int = 0


class PostListResponse(BaseModel):
	items: List[PostResponse]


class ReactionRequest(BaseModel):
	reaction: str = Field(..., pattern="^(like|dislike)$")


class CommentCreateRequest(BaseModel):
	content: str = Field(..., min_length=1, max_length=1000)


class CommentResponse(BaseModel):
	id: str
	author_id: str
	author_name: str
	content: str
	created_at: datetime


class CommentListResponse(BaseModel):
	items: List[CommentResponse]


# --- forums ------------------------------------------------------------------

class ForumMessageCreateRequest(BaseModel):
	text: str = Field(..., min_length=1, max_length=2000)


class ForumMessageResponse(BaseModel):
	id: str
	author_id: str
	author_name: str
	text: str
	created_at: datetime


class ForumSummary(BaseModel):
	id: str
	name: str
	description: str = ""
	required_role: str = Field(..., pattern=_ROLE_PATTERN)
	unread_count: int = 0
	last_message: Optional[ForumMessageResponse] = None


class ForumListResponse(BaseModel):
	items: List[ForumSummary]


class ForumMessagesResponse(BaseModel):
	forum: ForumSummary
	items: List[ForumMessageResponse]


# --- surveys -----------------------------------------------------------------

class SurveyCreateRequest(BaseModel):
	question: str = Field(..., min_length=10, max_length=300)
	options: List[str] = Field(..., min_length=2, max_length=10)
	deadline: datetime

	@field_validator("options")
	@classmethod
	def _clean_options(cls, value: List[str]) -> List[str]:
		cleaned = [item.strip() for item in value]
		if any(not item or len(item) > 120 for item in cleaned):
			raise ValueError("options must be 1-120 characters")
		return cleaned


class VoteRequest(BaseModel):
	option_index: int = Field(..., ge=0)


class SurveyOptionResult(BaseModel):
	text: str
	votes: int
	percentage: float


class SurveyResponse(BaseModel):
	id: str
	question: str
	options: List[SurveyOptionResult]
	deadline: datetime
	created_at: datetime
	author_id: str
	author_name: str
	total_votes: int
	my_vote: Optional[int] = None
	closed: bool


class SurveyListResponse(BaseModel):
	items: List[SurveyResponse]


# --- finances ----------------------------------------------------------------

class CategoryResponse(BaseModel):
	id: str
	name: str


class CategoryCreateRequest(BaseModel):
	name: str = Field(..., min_length=3, max_length=40)


class TransactionCreateRequest(BaseModel):
	type: str = Field(..., pattern="^(income|expense)$")
	amount: float = Field(..., gt=0)
	description: str = Field(..., min_length=4, max_length=25)
	date: date
	category_id: str = Field(..., min_length=1, max_length=60)


class TransactionResponse(BaseModel):
	id: str
	type: str
	amount: float
	description: str
	date: date
	category_id: str
	category_name: str
	author_id: str
	created_at: datetime


class CategoryBreakdown(BaseModel):
	category_id: str
	name: str
	income: float = 0.0
	expense: float = 0.0


class FinanceOverviewResponse(BaseModel):
	public_visibility: bool
	can_manage: bool
	managers: List[str]
	categories: List[CategoryResponse]
	transactions: List[TransactionResponse]
	income_total: float
	expense_total: float
	balance: float
	by_category: List[CategoryBreakdown]


class VisibilityRequest(BaseModel):
	public_visibility: bool


class VisibilityResponse(BaseModel):
	public_visibility: bool
	notified: int
	failed: List[str] = Field(default_factory=list)


class ManagersRequest(BaseModel):
	user_ids: List[str] = Field(default_factory=list, max_length=200)


class ManagersResponse(BaseModel):
	managers: List[str]
	added: List[str]
	removed: List[str]


class CategorizeRequest(BaseModel):
	description: str = Field(..., min_length=2, max_length=200)


class CategorizeResponse(BaseModel):
	category_id: str
	category_name: str


class ProjectionResponse(BaseModel):
	analysis: str
	recommendations: List[str]
	alerts: List[str]


# --- competition -------------------------------------------------------------

class ScoreChange(BaseModel):
	course: str = Field(..., min_length=1, max_length=80)
	points: int


class ScoreEntry(BaseModel):
	course: str
	points: int


class ScoreLogEntry(BaseModel):
	id: str
	timestamp: datetime
	reason: str
	editor_id: str
	editor_name: str
	changes: List[ScoreChange]


class CompetitionResponse(BaseModel):
	scores: List[ScoreEntry]
	log: List[ScoreLogEntry]
	admins_plus_allowed: bool
	managers: List[str]
	can_edit: bool


class ScoreUpdateRequest(BaseModel):
	changes: List[ScoreChange] = Field(..., min_length=1, max_length=60)
	reason: str = Field(..., min_length=10, max_length=300)


class CompetitionPermissionsRequest(BaseModel):
	admins_plus_allowed: bool
	managers: List[str] = Field(default_factory=list, max_length=200)


# --- workshops ---------------------------------------------------------------

class WorkshopRequest(BaseModel):
	title: str = Field(..., min_length=5, max_length=100)
	description: str = Field(..., min_length=10, max_length=1000)
	date: datetime
	is_virtual: bool = False
	location: str = Field(..., min_length=3, max_length=200)
	instructor: str = Field(..., min_length=3, max_length=100)


class WorkshopResponse(WorkshopRequest):
	id: str
	author_id: str
	author_name: str
	created_at: datetime


class WorkshopListResponse(BaseModel):
	items: List[WorkshopResponse]
	can_manage: bool
	managers: List[str]


# --- anonymous chat ----------------------------------------------------------

class ChatStartRequest(BaseModel):
	text: str = Field(..., min_length=1, max_length=2000)


class ChatMessageCreateRequest(BaseModel):
	text: str = Field(..., min_length=1, max_length=2000)


class ChatMessageResponse(BaseModel):
	id: str
	sender: str = Field(..., pattern="^(user|moderator|system)$")
	text: str
	created_at: datetime


class ChatResponse(BaseModel):
	id: str
	status: str = Field(..., pattern="^(open|closed|blocked)$")
	created_at: datetime
	last_message_at: datetime
	last_message_preview: str = ""
	unread: bool = False
	is_mine: bool = False


class ChatListResponse(BaseModel):
	items: List[ChatResponse]
	is_moderator: bool


class ChatDetailResponse(BaseModel):
	chat: ChatResponse
	messages: List[ChatMessageResponse]


class ChatStatusRequest(BaseModel):
	status: str = Field(..., pattern="^(open|closed|blocked)$")


# --- notifications -----------------------------------------------------------

class NotificationResponse(BaseModel):
	id: str
	type: str
	center_id: Optional[str] = None
	center_name: Optional[str] = None
	created_at: datetime
	read: bool = False
	permission_type: Optional[str] = None
	new_role: Optional[str] = None
	new_visibility: Optional[bool] = None
	subject_user_id: Optional[str] = None
	subject_user_name: Optional[str] = None


class NotificationListResponse(BaseModel):
	items: List[NotificationResponse]
	unread_count: int


class NotificationUnreadResponse(BaseModel):
	count: int


class NotificationMarkReadResponse(BaseModel):
	updated: int


# --- text generation ---------------------------------------------------------

class DistrictsRequest(BaseModel):
	country: str = Field(..., min_length=2, max_length=60)
	province: str = Field(..., min_length=2, max_length=80)


class DistrictsResponse(BaseModel):
	districts: List[str]


class FixtureTeam(BaseModel):
	id: str = Field(..., min_length=1, max_length=60)
	name: str = Field(..., min_length=1, max_length=80)


class FixtureRequest(BaseModel):
	teams: List[FixtureTeam] = Field(..., min_length=2, max_length=64)
	description: str = Field(..., min_length=5, max_length=1000)
	classification_type: str = Field(..., pattern="^(groups|elimination)$")
	available_dates: List[str] = Field(default_factory=list, max_length=60)
	available_times: List[str] = Field(default_factory=list, max_length=30)
	available_locations: List[str] = Field(default_factory=list, max_length=30)
