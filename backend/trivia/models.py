from trivia import db, bcrypt
from flask_login import UserMixin
from datetime import datetime
import json

SETTINGS_ID = 1
GAME_CONTROL_ID = 1

STATUS_OPEN = 'OPEN'
STATUS_CLOSED = 'CLOSED'


class AdminUser(UserMixin):
    """The single administrator/presenter identity; there is no user table."""
    id = 'admin'


class Settings(db.Model):
    __tablename__ = 'settings'
    id = db.Column(db.Integer, primary_key=True, default=SETTINGS_ID)
    game_title = db.Column(db.String(120), nullable=False, default='Trivia Night')
    logo_url = db.Column(db.String(500), nullable=True)
    primary_color = db.Column(db.String(16), nullable=False, default='#000000')
    secondary_color = db.Column(db.String(16), nullable=False, default='#ffffff')
    question_timer = db.Column(db.Integer, nullable=False, default=20)
    points_base = db.Column(db.Integer, nullable=False, default=1000)
    points_factor = db.Column(db.Integer, nullable=False, default=10)
    questions_limit = db.Column(db.Integer, nullable=True)
    admin_password = db.Column(db.String(128), nullable=False)

    def set_password(self, password):
        self.admin_password = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        if not password or not self.admin_password:
            return False
        return bcrypt.check_password_hash(self.admin_password, password)

    def to_dict(self):
        # admin_password never leaves the server
        return {
            'id': self.id,
            'game_title': self.game_title,
            'logo_url': self.logo_url,
            'primary_color': self.primary_color,
            'secondary_color': self.secondary_color,
            'question_timer': self.question_timer,
            'points_base': self.points_base,
            'points_factor': self.points_factor,
            'questions_limit': self.questions_limit,
        }


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    question_text = db.Column(db.Text, nullable=False)
    options_json = db.Column('options', db.Text, nullable=False, default='[]')  # JSON-encoded list of strings
    correct_option = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    answers = db.relationship('Answer', backref='question', cascade='all, delete-orphan')

    @property
    def options(self):
        try:
            return json.loads(self.options_json) if self.options_json else []
        except ValueError:
            return []

    @options.setter
    def options(self, values):
        self.options_json = json.dumps(list(values or []))

    def to_dict(self):
        return {
            'id': self.id,
            'question_text': self.question_text,
            'options': self.options,
            'correct_option': self.correct_option,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Player(db.Model):
    __tablename__ = 'player'
    id = db.Column(db.Integer, primary_key=True)
    nickname = db.Column(db.String(64), unique=True, nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    answers = db.relationship('Answer', backref='player', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'nickname': self.nickname,
            'score': self.score or 0,
        }


class GameControl(db.Model):
    __tablename__ = 'game_control'
    id = db.Column(db.Integer, primary_key=True, default=GAME_CONTROL_ID)
    game_status = db.Column(db.String(16), nullable=False, default=STATUS_CLOSED)
    is_active = db.Column(db.Boolean, nullable=False, default=False)
    active_question_id = db.Column(
        db.Integer,
        db.ForeignKey('question.id', name='fk_game_control_active_question_id', ondelete='SET NULL'),
        nullable=True,
    )

    def to_dict(self):
        return {
            'id': self.id,
            'game_status': self.game_status,
            'is_active': bool(self.is_active),
            'active_question_id': self.active_question_id,
        }


class Answer(db.Model):
    """Server-side record of one scored answer; one per player per question."""
    __tablename__ = 'answer'
    id = db.Column(db.Integer, primary_key=True)
    player_id = db.Column(db.Integer, db.ForeignKey('player.id', ondelete='CASCADE'), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('question.id', ondelete='CASCADE'), nullable=False)
    option_index = db.Column(db.Integer, nullable=False)
    correct = db.Column(db.Boolean, nullable=False, default=False)
    points = db.Column(db.Integer, nullable=False, default=0)
    elapsed_seconds = db.Column(db.Float, nullable=False, default=0.0)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('player_id', 'question_id', name='uq_answer_player_question'),
        db.Index('ix_answer_question', 'question_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'player_id': self.player_id,
            'question_id': self.question_id,
            'option_index': self.option_index,
            'correct': bool(self.correct),
            'points': self.points,
            'elapsed_seconds': self.elapsed_seconds,
        }
