import io

from flask_jwt_extended import create_access_token


def score_csv(rows, header="player_id,score"):
    lines = [header] + [f"{player_id},{score}" for player_id, score in rows]
    return ("\n".join(lines) + "\n").encode("utf-8")


def auth_headers(role, tenant_name, subject="someone"):
    token = create_access_token(identity=subject, additional_claims={"role": role, "tenant": tenant_name})
    return {"Authorization": f"Bearer {token}"}


def upload(csv_bytes):
    return {"scores": (io.BytesIO(csv_bytes), "scores.csv")}
