from typing import Optional


class FixtureValidator:
    @staticmethod
    def validate(
        team1,
        team2,
        stage: str,
        group: Optional[str],
        match_date: Optional[str],
        existing: list,
        editing_id: Optional[int] = None,
    ) -> dict:
        """
        Validate a manually added (or edited) tournament match.

        Rules:
        1. Both teams selected and different
        2. The pair hasn't already met in this stage (and group, for group stage)
        3. Neither team already plays on the same day
        """
        errors = []

        if team1 is None or team2 is None:
            errors.append("Please select both teams")
            return {"valid": False, "errors": errors}

        if team1.id == team2.id:
            errors.append("Teams must be different")
            return {"valid": False, "errors": errors}

        pair = {team1.id, team2.id}
        others = [m for m in existing if editing_id is None or m.id != editing_id]

        for m in others:
            same_group = stage != "group" or m.group == group
            if {m.team1_id, m.team2_id} == pair and m.stage.value == stage and same_group:
                errors.append(f"Match between {team1.team_name} and {team2.team_name} already exists in this stage")
                break

        if match_date:
            day = match_date.split("T")[0]
            for m in others:
                if not m.match_date or m.match_date.split("T")[0] != day:
                    continue
                clash = next((t for t in (team1, team2) if t.id in (m.team1_id, m.team2_id)), None)
                if clash is not None:
                    errors.append(f"{clash.team_name} already has a match scheduled on {day}")
                    break

        return {
            "valid": len(errors) == 0,
            "errors": errors,
        }
