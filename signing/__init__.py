"""
Signing feature.

One-time worker signatures on safety talks, risk analyses, site inductions,
fitness evaluations, documents and enrollments, each producing a stored PDF
certificate (stamped onto the attached PDF, or synthesized).
"""
