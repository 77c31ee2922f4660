# models.py
from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


# association table for group members
group_members = db.Table(
    'group_members',
    db.Column('group_id', db.Integer, db.ForeignKey('groups.id'), primary_key=True),
    db.Column('user_id', db.Integer, db.ForeignKey('users.id'), primary_key=True)
)


class User(db.Model):
    __tablename__ = 'users'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)


class Group(db.Model):
    __tablename__ = 'groups'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(140), nullable=False)
    description = db.Column(db.String(500), default="")
    created_at = db.Column(db.DateTime, default=utcnow)
    users = db.relationship('User', secondary=group_members, backref='groups', order_by='User.id')

    @property
    def member_ids(self):
        return [u.id for u in self.users]


class Expense(db.Model):
    __tablename__ = 'expenses'
    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False)
    payer_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    description = db.Column(db.String(200), default="")
    split_type = db.Column(db.String(20), nullable=False, default='equal')
    created_at = db.Column(db.DateTime, default=utcnow)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    updated_at = db.Column(db.DateTime)
    updated_by = db.Column(db.Integer, db.ForeignKey('users.id'))

    group = db.relationship('Group', backref='expenses')
    payer = db.relationship('User', foreign_keys=[payer_id])
    splits = db.relationship('ExpenseSplit', backref='expense', cascade='all, delete-orphan',
                             order_by='ExpenseSplit.user_id')

    def to_dict(self):
        return {
            'id': self.id,
            'group_id': self.group_id,
            'payer_id': self.payer_id,
            'amount': str(self.amount),
            'description': self.description,
            'split_type': self.split_type,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'splits': [s.to_dict() for s in self.splits],
        }


class ExpenseSplit(db.Model):
    __tablename__ = 'expense_splits'
    expense_id = db.Column(db.Integer, db.ForeignKey('expenses.id'), primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), primary_key=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)

    def to_dict(self):
        return {'user_id': self.user_id, 'amount': str(self.amount)}


class Settlement(db.Model):
    __tablename__ = 'settlements'
    id = db.Column(db.Integer, primary_key=True)
    group_id = db.Column(db.Integer, db.ForeignKey('groups.id'), nullable=False)
    from_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    to_user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)
    # tombstone: kept for audit, never fed to the ledger
    deleted_at = db.Column(db.DateTime)

    __table_args__ = (
        db.CheckConstraint('from_user_id != to_user_id', name='ck_settlement_distinct_members'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'group_id': self.group_id,
            'from_user_id': self.from_user_id,
            'to_user_id': self.to_user_id,
            'amount': str(self.amount),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
