"""
Questboard Domain Modules

- shared: base classes, exceptions, constants, validators
- progression: leveling ledger, XP grants, raid intake
- boss: shared boss encounter
- pvp: duels
- praise: daily praise
"""
