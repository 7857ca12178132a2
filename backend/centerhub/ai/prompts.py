"""Prompt templates for the text-generation flows."""

from __future__ import annotations

import json
from typing import Tuple

from centerhub.ai import schemas

Messages = Tuple[str, str]


def categorize(payload: schemas.CategorizeInput) -> Messages:
	system = (
		"Eres un experto en finanzas y tu tarea es categorizar una transacción. "
		'Responde con un objeto JSON de la forma {"category": "<nombre>"}.'
	)
	options = "\n".join(f"- {name}" for name in payload.categories)
	user = (
		f'Analiza la siguiente descripción de la transacción: "{payload.description}".\n\n'
		f"Selecciona la categoría más adecuada de la siguiente lista:\n{options}\n\n"
		"Devuelve únicamente el nombre exacto de la categoría. "
		'Si ninguna categoría parece adecuada, elige "Varios".'
	)
	return system, user


def districts(payload: schemas.DistrictsInput) -> Messages:
	system = (
		"You are an expert geographer. "
		'Reply with a JSON object of the form {"districts": ["<name>", ...]}.'
	)
	user = (
		"List the primary administrative divisions (districts, municipalities or partidos) "
		f"of the province/state '{payload.province}' in '{payload.country}'. "
		"For 'Buenos Aires' in 'Argentina' that is its partidos; for 'Madrid' in 'España', its districts."
	)
	return system, user


def fixture(payload: schemas.FixtureInput) -> Messages:
	system = (
		"You are a sports tournament organizer. Build a fixture from a list of teams, "
		"a format description and the available resources. Use the exact team ids and names "
		"given; never invent teams. Reply with a JSON object with keys "
		'"groups" (only for group tournaments) and "knockout_rounds". Every match has a unique '
		'"id", optional "team1"/"team2" objects ({"id", "name"}), optional '
		'"team1_placeholder"/"team2_placeholder" strings such as "1st Group A", and '
		'"date", "time" and "location" taken from the available resources.'
	)
	teams = json.dumps([team.model_dump() for team in payload.teams], ensure_ascii=False)
	user = (
		f"Tournament type: {payload.classification_type}\n"
		f"Teams: {teams}\n"
		f'Format description: "{payload.description}"\n'
		f"Dates: {', '.join(payload.available_dates)}\n"
		f"Times: {', '.join(payload.available_times)}\n"
		f"Locations: {', '.join(payload.available_locations)}\n\n"
		"Distribute teams evenly across groups and play a round robin inside each group. "
		"Spread matches across the available dates, times and locations. "
		"Knockout matches that depend on group results use placeholders instead of teams. "
		"For 'elimination' return only knockout_rounds with the teams placed in the first round."
	)
	return system, user


def projection(payload: schemas.ProjectionInput) -> Messages:
	system = (
		"Eres un asesor financiero para centros de estudiantes. Responde con un objeto JSON "
		'con las claves "analysis" (texto), "recommendations" (3 a 5 textos) y '
		'"alerts" (1 a 3 textos).'
	)
	history = json.dumps([item.model_dump() for item in payload.transactions], ensure_ascii=False)
	user = (
		f"Saldo actual: {payload.current_balance:.2f}\n"
		f"Historial de transacciones: {history}\n\n"
		"Analiza brevemente el estado financiero, proyecta la tendencia, da recomendaciones "
		"accionables y alerta sobre riesgos como gastos excesivos en una categoría o un saldo bajo."
	)
	return system, user
