from flask_sqlalchemy import SQLAlchemy

# Directory store (tenants, id_generator, visit_history)
db = SQLAlchemy()
