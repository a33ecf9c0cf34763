# -*- coding: utf-8 -*-
"""Allergen tracker: food/symptom records over a generic key/value ledger."""

__version__ = "0.1.0"
