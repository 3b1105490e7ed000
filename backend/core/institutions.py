"""
institutions.py — Built-in grading data.

Pure declarative data, no logic: year weights, cohort variants, GPA
conversion tables, classification tables and letter-grade values for the
supported institutions. A JSON file of the same shape can replace it
(see SCHEME_FILE).

Tables are (threshold, value) pairs; a score takes the value of the highest
threshold it meets or exceeds.
"""

# ── GPA conversion tables (UK percentage → US 4.0) ──────────────────

SCALES = {
    "birmingham-us-4.0": {
        "name": "Birmingham / Russell Group percentage to US GPA",
        "entries": [
            (80, 4.0), (75, 3.9), (70, 3.7), (68, 3.6), (65, 3.5),
            (62, 3.3), (60, 3.2), (58, 3.0), (55, 2.8), (52, 2.6),
            (50, 2.5), (48, 2.3), (45, 2.0), (42, 1.8), (40, 1.5),
            (0, 0.0),
        ],
    },
    "leeds-us-4.0": {
        "name": "Leeds percentage to US GPA",
        "entries": [
            (70, 4.0), (67, 3.85), (64, 3.7), (60, 3.5), (57, 3.3),
            (54, 3.15), (50, 3.0), (47, 2.7), (44, 2.5), (40, 2.3),
            (0, 0.0),
        ],
    },
    "manchester-us-4.0": {
        "name": "Manchester percentage to US GPA",
        "entries": [
            (80, 4.0), (75, 3.9), (70, 3.7), (67, 3.6), (64, 3.4),
            (60, 3.0), (57, 2.9), (54, 2.7), (50, 2.3), (45, 2.0),
            (40, 1.7), (35, 1.3), (30, 1.0), (0, 0.0),
        ],
    },
    "nottingham-us-4.0-midpoint": {
        "name": "Nottingham classification band midpoints",
        "entries": [(70, 3.85), (60, 3.35), (50, 2.35), (40, 1.5), (0, 0.5)],
    },
    "nottingham-us-4.0-lower-bound": {
        "name": "Nottingham classification band lower bounds",
        "entries": [(70, 3.7), (60, 3.0), (50, 2.0), (40, 1.0), (0, 0.0)],
    },
    "teesside-us-4.0": {
        "name": "Teesside percentage to US GPA",
        "entries": [(70, 4.0), (60, 3.3), (50, 2.7), (40, 2.0), (0, 0.0)],
    },
    "us-4.0": {
        "name": "US 4.0 grade point average",
        "entries": [(0, 0.0)],
    },
}

# ── Classification tables ───────────────────────────────────────────

CLASSIFICATIONS = {
    "uk-honours-ordinary": {
        "name": "UK honours with ordinary degree",
        "entries": [
            (70, "First Class Honours (1st)"),
            (60, "Upper Second Class Honours (2:1)"),
            (50, "Lower Second Class Honours (2:2)"),
            (40, "Third Class Honours (3rd)"),
            (35, "Ordinary Degree (Pass)"),
            (0, "Fail"),
        ],
    },
    "uk-honours": {
        "name": "UK honours",
        "entries": [
            (70, "First Class Honours (1st)"),
            (60, "Upper Second Class Honours (2:1)"),
            (50, "Lower Second Class Honours (2:2)"),
            (40, "Third Class Honours (3rd)"),
            (0, "Fail"),
        ],
    },
    "leeds-2024": {
        "name": "Leeds 2024/25 classification thresholds",
        "entries": [
            (68.5, "First Class Honours"),
            (59.0, "Upper Second Class (2:1)"),
            (49.5, "Lower Second Class (2:2)"),
            (39.5, "Third Class Honours"),
            (0, "Fail"),
        ],
    },
    "manchester-honours": {
        "name": "Manchester degree classification",
        "entries": [
            (70, "First Class Honours"),
            (60, "Upper Second Class (2:1)"),
            (50, "Lower Second Class (2:2)"),
            (40, "Third Class Honours"),
            (35, "Ordinary Degree"),
            (0, "Fail"),
        ],
    },
    "ucla-latin-honors": {
        "name": "UCLA Latin honors",
        "entries": [
            (3.935, "Summa Cum Laude"),
            (3.753, "Magna Cum Laude"),
            (3.5, "Cum Laude"),
            (0, "No Latin Honors"),
        ],
    },
    "us-academic-standing": {
        "name": "US academic standing",
        "entries": [
            (3.5, "Dean's Honor List"),
            (2.0, "Good Standing"),
            (0, "Academic Probation"),
        ],
    },
}

# ── Letter grade values ─────────────────────────────────────────────

GRADE_VALUES = {
    "us-letter-4.0": {
        "values": {
            "A+": 4.0, "A": 4.0, "A-": 3.7,
            "B+": 3.3, "B": 3.0, "B-": 2.7,
            "C+": 2.3, "C": 2.0, "C-": 1.7,
            "D+": 1.3, "D": 1.0, "D-": 0.7,
            "F": 0.0,
        },
        "excluded": ["P", "NP", "S", "U"],
    },
    "berkeley-honors-5.0": {
        "values": {
            "A+": 5.0, "A": 5.0, "A-": 4.7,
            "B+": 4.3, "B": 4.0, "B-": 3.7,
            "C+": 3.3, "C": 3.0, "C-": 2.7,
            "D+": 2.3, "D": 2.0, "D-": 1.7,
            "F": 0.0,
        },
        "excluded": ["P", "NP", "S", "U"],
    },
    "teesside-letter": {
        "values": {
            "A+": 95, "A": 85, "A-": 80,
            "B+": 75, "B": 70, "B-": 67,
            "C+": 63, "C": 60, "C-": 57,
            "D+": 53, "D": 50, "D-": 47,
            "E+": 43, "E": 40, "E-": 37,
            "F": 20,
        },
    },
}

# ── Institutions ────────────────────────────────────────────────────

INSTITUTIONS = {
    "birmingham": {
        "name": "University of Birmingham",
        "mark_type": "percentage",
        "period_weights": {1: 0.10, 2: 0.30, 3: 0.60},
        "credit_target": 120,
        "scales": ["birmingham-us-4.0"],
        "classification": "uk-honours-ordinary",
    },
    "leeds": {
        "name": "University of Leeds",
        "mark_type": "percentage",
        "period_weights": {1: 0.10, 2: 0.30, 3: 0.60},
        "credit_target": 120,
        "scales": ["leeds-us-4.0"],
        "classification": "leeds-2024",
        "cohorts": {
            "pre-2022": {
                "description": "Entered before 2022: 10/30/60, no uplift.",
            },
            "2022-onwards": {
                "description": "Entered 2022 or later: year 1 not counted, 1:2 ratio, +0.5 uplift.",
                "period_weights": {1: 0.0, 2: 0.3333, 3: 0.6667},
                "borderline_adjustment": {"mode": "add", "amount": 0.5},
            },
        },
    },
    "manchester": {
        "name": "University of Manchester",
        "mark_type": "percentage",
        "period_weights": {1: 0.20, 2: 0.30, 3: 0.50},
        "credit_target": 120,
        "max_weight": 240,
        "scales": ["manchester-us-4.0"],
        "classification": "manchester-honours",
    },
    "nottingham": {
        "name": "University of Nottingham",
        "mark_type": "percentage",
        "period_weights": {1: 0.0, 2: 0.3333, 3: 0.6667},
        "credit_target": 120,
        "scales": ["nottingham-us-4.0-midpoint", "nottingham-us-4.0-lower-bound"],
        "classification": "uk-honours",
        "borderline_margin": 1.0,
    },
    "teesside": {
        "name": "Teesside University",
        "mark_type": "letter",
        "period_weights": {1: 0.0, 2: 0.33, 3: 0.67},
        "credit_target": 120,
        "grade_values": "teesside-letter",
        "scales": ["teesside-us-4.0"],
        "classification": "uk-honours",
        "borderline_margin": 2.0,
    },
    "ucla": {
        "name": "University of California, Los Angeles",
        "mark_type": "points",
        "period_weights": {"overall": 1.0},
        "grade_values": "us-letter-4.0",
        "scales": ["us-4.0"],
        "native_scale": True,
        "pool_periods": True,
        "classification": "ucla-latin-honors",
        "extra_classifications": ["us-academic-standing"],
    },
    "berkeley": {
        "name": "University of California, Berkeley",
        "mark_type": "points",
        "period_weights": {"overall": 1.0},
        "grade_values": "us-letter-4.0",
        "honors_grade_values": "berkeley-honors-5.0",
        "scales": ["us-4.0"],
        "native_scale": True,
        "pool_periods": True,
        "classification": "us-academic-standing",
    },
}

REGISTRY_DATA = {
    "institutions": INSTITUTIONS,
    "scales": SCALES,
    "classifications": CLASSIFICATIONS,
    "grade_values": GRADE_VALUES,
}
