"""National identity document formats accepted when joining a center."""

from __future__ import annotations

import re
from typing import NamedTuple, Optional


class DocumentFormat(NamedTuple):
	name: str
	pattern: str


DOCUMENT_FORMATS = {
	"Argentina": DocumentFormat("Documento Nacional de Identidad (DNI)", r"^\d{8}$"),
	"Bolivia": DocumentFormat("Cédula de Identidad (CI)", r"^\d{7,9}$"),
	"Chile": DocumentFormat("Cédula de Identidad (CI)", r"^\d{8}[\dkK]$"),
	"Colombia": DocumentFormat("Cédula de Ciudadanía (CC)", r"^\d{8,10}$"),
	"Costa Rica": DocumentFormat("Cédula de Identidad", r"^\d{9}$"),
	"Cuba": DocumentFormat("Carné de Identidad", r"^\d{11}$"),
	"Ecuador": DocumentFormat("Cédula de Ciudadanía", r"^\d{10}$"),
	"El Salvador": DocumentFormat("Documento Único de Identidad (DUI)", r"^\d{9}$"),
	"España": DocumentFormat("Documento Nacional de Identidad (DNI)", r"^\d{8}[A-Z]$"),
	"Guatemala": DocumentFormat("Documento Personal de Identificación (DPI)", r"^\d{13}$"),
	"Honduras": DocumentFormat("Tarjeta de Identidad", r"^\d{13}$"),
	"México": DocumentFormat("Clave Única de Registro de Población (CURP)", r"^[A-Z]{4}\d{6}[HM][A-Z]{5}[A-Z0-9]{2}$"),
	"Nicaragua": DocumentFormat("Cédula de Identidad", r"^\d{13}[A-Z]$"),
	"Paraguay": DocumentFormat("Cédula de Identidad Civil", r"^\d{6,7}$"),
	"Perú": DocumentFormat("Documento Nacional de Identidad (DNI)", r"^\d{8}$"),
	"Puerto Rico": DocumentFormat("Licencia de Conducir o ID del Estado", r"^\d{9}$"),
	"República Dominicana": DocumentFormat("Cédula de Identidad y Electoral", r"^\d{11}$"),
	"Uruguay": DocumentFormat("Cédula de Identidad", r"^\d{8}$"),
	"Venezuela": DocumentFormat("Cédula de Identidad", r"^[VE]?\d{7,8}$"),
}


def document_format(country: str) -> Optional[DocumentFormat]:
	return DOCUMENT_FORMATS.get(country)


def is_valid_document(country: str, number: str | None) -> bool:
	fmt = document_format(country)
	if fmt is None or not number:
		return False
	return re.match(fmt.pattern, number.strip()) is not None
