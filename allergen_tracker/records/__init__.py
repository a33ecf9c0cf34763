# -*- coding: utf-8 -*-
"""Records domain (food/symptom entries, index, lifecycle, statistics).

Storage goes through ``allergen_tracker.kvstore``; nothing here inspects the
sealed food/symptom payloads.
"""
