# app.py
import logging

from flask import Flask, jsonify, request
from flask.logging import default_handler

from balances import calculate_balances, calculate_debts
from config import Config
from debts import calculate_debt_details, filter_by_user
from errors import LedgerError, ValidationError
from models import db, User, Group
from money import CENT, ZERO, round2
import services
from summary import get_user_summary

# module loggers that write through Flask's handler
LEDGER_LOGGERS = ('services', 'splits', 'debts')


def _int_id(value, field):
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer id') from None


def _expense_args(data):
    """Pull expense fields out of a JSON body; JSON object keys arrive as strings."""
    member_ids = data.get('member_ids')
    if member_ids is not None:
        member_ids = [_int_id(uid, 'member_ids') for uid in member_ids]
    custom = data.get('custom_splits')
    if custom is not None:
        if not isinstance(custom, dict):
            raise ValidationError('custom_splits must be an object')
        custom = {_int_id(k, 'custom_splits'): v for k, v in custom.items()}
    return dict(
        description=data.get('description', ''),
        amount=data.get('amount'),
        payer_id=_int_id(data.get('payer_id'), 'payer_id'),
        split_type=data.get('split_type', 'equal'),
        member_ids=member_ids,
        custom=custom,
        beneficiary_id=_int_id(data.get('beneficiary_id'), 'beneficiary_id'),
    )


def create_app(config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if isinstance(config, dict):
        app.config.update(config)
    elif config is not None:
        app.config.from_object(config)
    app.logger.setLevel(app.config['LOG_LEVEL'])
    for name in LEDGER_LOGGERS:
        log = logging.getLogger(name)
        log.setLevel(app.config['LOG_LEVEL'])
        if default_handler not in log.handlers:
            log.addHandler(default_handler)
    db.init_app(app)

    with app.app_context():
        db.create_all()

    @app.errorhandler(LedgerError)
    def ledger_error(err):
        app.logger.info('rejected %s %s: %s', request.method, request.path, err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.route('/api/users', methods=['POST'])
    def create_user():
        data = request.json or {}
        name = data.get('name')
        if not name:
            return jsonify({'error': 'name required'}), 400
        u = User(name=name)
        db.session.add(u)
        db.session.commit()
        return jsonify({'id': u.id, 'name': u.name}), 201

    @app.route('/api/groups', methods=['POST'])
    def create_group():
        data = request.json or {}
        name = data.get('name')
        member_ids = data.get('members', [])
        if not name:
            return jsonify({'error': 'name required'}), 400
        g = Group(name=name, description=data.get('description', ''))
        db.session.add(g)
        # attach members
        if member_ids:
            g.users = db.session.scalars(db.select(User).where(User.id.in_(member_ids))).all()
        db.session.commit()
        return jsonify({'id': g.id, 'name': g.name}), 201

    @app.route('/api/groups/<int:group_id>/add_member', methods=['POST'])
    def add_member(group_id):
        data = request.json or {}
        uid = _int_id(data.get('user_id'), 'user_id')
        if uid is None:
            return jsonify({'error': 'user_id required'}), 400
        g = db.get_or_404(Group, group_id)
        u = db.get_or_404(User, uid)
        if u not in g.users:
            g.users.append(u)
            db.session.commit()
        return jsonify({'ok': True})

    @app.route('/api/groups/<int:group_id>', methods=['GET'])
    def group_detail(group_id):
        snap = services.load_group_snapshot(group_id)
        return jsonify({
            'id': snap.group.id,
            'name': snap.group.name,
            'members': [{'id': u.id, 'name': u.name} for u in snap.members],
            'expenses': [e.to_dict() for e in snap.expenses],
            'settlements': [s.to_dict() for s in snap.settlements],
        })

    @app.route('/api/groups/<int:group_id>/expenses', methods=['POST'])
    def add_expense(group_id):
        data = request.json or {}
        exp = services.create_expense(group_id, created_by=_int_id(data.get('created_by'), 'created_by'),
                                      **_expense_args(data))
        return jsonify(exp.to_dict()), 201

    @app.route('/api/expenses/<int:expense_id>', methods=['PUT'])
    def edit_expense(expense_id):
        data = request.json or {}
        exp = services.update_expense(expense_id, updated_by=_int_id(data.get('updated_by'), 'updated_by'),
                                      **_expense_args(data))
        return jsonify(exp.to_dict())

    @app.route('/api/expenses/<int:expense_id>', methods=['DELETE'])
    def remove_expense(expense_id):
        services.delete_expense(expense_id)
        return jsonify({'ok': True})

    @app.route('/api/groups/<int:group_id>/settlements', methods=['POST'])
    def add_settlement(group_id):
        data = request.json or {}
        st = services.create_settlement(
            group_id,
            _int_id(data.get('from_user_id'), 'from_user_id'),
            _int_id(data.get('to_user_id'), 'to_user_id'),
            data.get('amount'),
        )
        return jsonify(st.to_dict()), 201

    @app.route('/api/settlements/<int:settlement_id>', methods=['DELETE'])
    def remove_settlement(settlement_id):
        services.delete_settlement(settlement_id)
        return jsonify({'ok': True})

    @app.route('/api/groups/<int:group_id>/balances', methods=['GET'])
    def balances(group_id):
        snap = services.load_group_snapshot(group_id)
        result = calculate_balances(snap.members, snap.expenses, snap.splits, snap.settlements)
        total = round2(sum((b.amount for b in result), ZERO))
        if abs(total) > CENT:
            app.logger.error('group %s balances do not add up to zero: %s', group_id, total)
        transfers = calculate_debts(result)
        return jsonify({
            'balances': [b.to_dict() for b in result],
            'balance_sum': str(total),
            'suggested_transfers': [
                {'from_id': frm, 'to_id': to, 'amount': str(amt)} for frm, to, amt in transfers
            ],
        })

    @app.route('/api/groups/<int:group_id>/debts', methods=['GET'])
    def debts(group_id):
        snap = services.load_group_snapshot(group_id)
        details = calculate_debt_details(snap.expenses, snap.splits, snap.settlements, snap.members)
        user_id = request.args.get('user_id', type=int)
        if user_id is None:
            return jsonify([d.to_dict() for d in details])
        mine = filter_by_user(details, user_id)
        return jsonify({
            'i_owe': [d.to_dict() for d in mine.i_owe],
            'owed_to_me': [d.to_dict() for d in mine.owed_to_me],
        })

    @app.route('/api/users/<int:user_id>/summary', methods=['GET'])
    def user_summary(user_id):
        db.get_or_404(User, user_id)
        return jsonify(get_user_summary(user_id).to_dict())

    return app


if __name__ == '__main__':
    create_app().run(debug=True, port=5000)
