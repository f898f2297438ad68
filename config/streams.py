# Program streams and the semesters each one runs.
# "code" is the physical partition prefix, so it must never change once data exists.
STREAMS = [
    {"name": "BCA", "code": "bca", "description": "Bachelor of Computer Applications"},
    {"name": "BBA", "code": "bba", "description": "Bachelor of Business Administration"},
    {"name": "BCom", "code": "bcom", "description": "Bachelor of Commerce"},
    {
        "name": "BCom Section B",
        "code": "bcomsectionb",
        "periods": [5, 6],
        "description": "Bachelor of Commerce Section B (final year only)",
    },
    {"name": "BCom-BDA", "code": "bcom-bda", "description": "Bachelor of Commerce - Big Data Analytics"},
    {"name": "BCom A and F", "code": "bcom_a_and_f", "description": "Bachelor of Commerce - Accounting and Finance"},
    {"name": "BCA AI & ML", "code": "bcaaiandml", "description": "BCA - Artificial Intelligence and Machine Learning"},
]
