"""Structured inputs and outputs of the text-generation flows."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class CategorizeInput(BaseModel):
	description: str
	categories: List[str]


class CategorizeOutput(BaseModel):
	category: str


class DistrictsInput(BaseModel):
	country: str
	province: str


class DistrictsOutput(BaseModel):
	districts: List[str] = Field(default_factory=list)


class Team(BaseModel):
	id: str
	name: str


class Match(BaseModel):
	id: str
	team1: Optional[Team] = None
	team2: Optional[Team] = None
	team1_placeholder: Optional[str] = None
	team2_placeholder: Optional[str] = None
	score1: Optional[int] = None
	score2: Optional[int] = None
	winner_id: Optional[str] = None
	date: Optional[str] = None
	time: Optional[str] = None
	location: Optional[str] = None


class Group(BaseModel):
	name: str
	teams: List[Team] = Field(default_factory=list)
	matches: List[Match] = Field(default_factory=list)


class KnockoutRound(BaseModel):
	name: str
	matches: List[Match] = Field(default_factory=list)


class FixtureInput(BaseModel):
	teams: List[Team]
	description: str
	classification_type: str
	available_dates: List[str] = Field(default_factory=list)
	available_times: List[str] = Field(default_factory=list)
	available_locations: List[str] = Field(default_factory=list)


class FixtureOutput(BaseModel):
	groups: Optional[List[Group]] = None
	knockout_rounds: List[KnockoutRound]


class ProjectionTransaction(BaseModel):
	amount: float
	type: str
	category: str
	date: str
	description: str


class ProjectionInput(BaseModel):
	transactions: List[ProjectionTransaction]
	current_balance: float


class ProjectionOutput(BaseModel):
	analysis: str = Field(..., min_length=1)
	recommendations: List[str]
	alerts: List[str]
