"""Annual premium targets.

- dimensions.py: canonical dimension labels and the yearly baseline
- resolver.py: TargetTable and the dimension-priority target cascade
- csvio.py: goal CSV parsing/serialization (业务类型,年度目标（万）)
- versions.py: TargetVersionStore (initial + tuned versions, current pointer)
- metrics.py: achievement rate, gap and share per goal row
"""
