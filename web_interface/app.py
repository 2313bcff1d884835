#!/usr/bin/env python3
"""
Web interface for Milestone Vault

Callers authenticate every mutating request with four headers:
  X-Identity:  compressed secp256k1 public key (hex)
  X-Timestamp: unix seconds when the request was signed
  X-Nonce:     caller-chosen value, never reused within the timestamp window
  X-Signature: ECDSA/SHA-256 signature (hex) over the method, path,
               timestamp, nonce and raw body joined by newlines
"""

import logging

from flask import Flask, current_app, jsonify, request

from milestone_vault.config import PORT, WEB_DEBUG
from milestone_vault.errors import (
    AlreadyReleased,
    EscrowError,
    MilestoneNotFound,
    Unauthorized,
    VaultNotFound,
)
from milestone_vault.events import event_to_dict
from milestone_vault.identity import RequestAuthenticator
from milestone_vault.program import MilestoneVaultProgram

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    VaultNotFound: 404,
    MilestoneNotFound: 404,
    Unauthorized: 403,
    AlreadyReleased: 409,
}


class AuthenticationFailed(Exception):
    pass


def _error_response(error: EscrowError):
    status = ERROR_STATUS.get(type(error), 400)
    return jsonify({'success': False, 'error': str(error), 'code': error.code}), status


def _caller() -> str:
    """Verified identity of the request signer"""
    authenticator = current_app.config['AUTHENTICATOR']
    try:
        return authenticator.authenticate(
            request.method,
            request.path,
            request.get_data(),
            request.headers.get('X-Identity', ''),
            request.headers.get('X-Signature', ''),
            request.headers.get('X-Timestamp', ''),
            request.headers.get('X-Nonce', '')
        )
    except Unauthorized as e:
        raise AuthenticationFailed(str(e)) from e


def _body() -> dict:
    return request.get_json(silent=True) or {}


def create_app(program: MilestoneVaultProgram = None,
               authenticator: RequestAuthenticator = None) -> Flask:
    app = Flask(__name__)
    app.config['PROGRAM'] = program or MilestoneVaultProgram()
    app.config['AUTHENTICATOR'] = authenticator or RequestAuthenticator()

    def vaults() -> MilestoneVaultProgram:
        return app.config['PROGRAM']

    @app.errorhandler(EscrowError)
    def handle_escrow_error(error):
        return _error_response(error)

    @app.errorhandler(AuthenticationFailed)
    def handle_auth_error(error):
        return jsonify({'success': False, 'error': str(error), 'code': 'unauthenticated'}), 401

    @app.errorhandler(ValueError)
    def handle_value_error(error):
        return jsonify({'success': False, 'error': str(error), 'code': 'bad_request'}), 400

    @app.errorhandler(KeyError)
    def handle_missing_field(error):
        return jsonify({'success': False, 'error': f"Missing field {error}", 'code': 'bad_request'}), 400

    @app.route('/api/health')
    def health():
        return jsonify({'status': 'ok'})

    @app.route('/api/accounts', methods=['POST'])
    def open_account():
        """Open a token account owned by the caller"""
        caller = _caller()
        data = _body()
        account = vaults().token_ledger.open_account(data['account_id'], caller)
        return jsonify({
            'success': True,
            'account_id': account.account_id,
            'owner': account.owner,
            'balance': account.balance
        }), 201

    @app.route('/api/accounts/<account_id>')
    def get_account(account_id):
        token_ledger = vaults().token_ledger
        if not token_ledger.has_account(account_id):
            return jsonify({'error': 'Account not found'}), 404
        return jsonify({
            'account_id': account_id,
            'owner': token_ledger.owner_of(account_id),
            'balance': token_ledger.balance_of(account_id)
        })

    @app.route('/api/vaults', methods=['POST'])
    def create_vault():
        """Create new milestone vault"""
        caller = _caller()
        data = _body()

        vault = vaults().initialize_vault(
            caller,
            total_amount=data['total_amount'],
            milestone_count=data['milestone_count'],
            name=data['name'],
            recipient=data.get('recipient'),
            validators=data.get('validators', ()),
            proposers=data.get('proposers', ()),
            nonce=data.get('nonce'),
            description=data.get('description', ''),
            category=data.get('category'),
            location=data.get('location', ''),
            milestones=data.get('milestones')
        )

        logger.debug("Created vault %s", vault.vault_id)
        return jsonify({'success': True, 'vault': vault.to_dict()}), 201

    @app.route('/api/vaults/<vault_id>')
    def get_vault(vault_id):
        """Get vault information with milestone progress"""
        return jsonify(vaults().vault_summary(vault_id))

    @app.route('/api/vaults/<vault_id>/fund', methods=['POST'])
    def fund_vault(vault_id):
        caller = _caller()
        receipt = vaults().fund_vault(caller, vault_id, _body()['funding_account'])
        return jsonify({'success': True, 'transfer': receipt})

    @app.route('/api/vaults/<vault_id>/milestones/<int:index>')
    def get_milestone(vault_id, index):
        program = vaults()
        status = program.milestone_status(vault_id, index)
        milestone = program.get_milestone(vault_id, index)
        data = milestone.to_dict() if milestone is not None else {'vault_id': vault_id, 'index': index}
        data['status'] = status.value
        return jsonify(data)

    @app.route('/api/vaults/<vault_id>/milestones/<int:index>/proof', methods=['POST'])
    def submit_proof(vault_id, index):
        caller = _caller()
        data = _body()
        milestone = vaults().submit_proof(
            caller, vault_id, index, data['proof_reference'],
            confidence_score=data.get('confidence_score')
        )
        return jsonify({'success': True, 'milestone': milestone.to_dict()})

    @app.route('/api/vaults/<vault_id>/milestones/<int:index>/approve', methods=['POST'])
    def approve_milestone(vault_id, index):
        caller = _caller()
        milestone = vaults().approve_milestone(caller, vault_id, index)
        return jsonify({
            'success': True,
            'approvals': milestone.approval_count,
            'quorum_threshold': vaults().rules.quorum_threshold
        })

    @app.route('/api/vaults/<vault_id>/milestones/<int:index>/release', methods=['POST'])
    def release_funds(vault_id, index):
        caller = _caller()
        data = _body()
        event = vaults().release_funds(
            caller,
            vault_id,
            index,
            data['milestone_amount'],
            recipient_account=data.get('recipient_account')
        )
        vault = vaults().get_vault(vault_id)
        return jsonify({
            'success': True,
            'event': event_to_dict(event),
            'released_amount': vault.released_amount,
            'remaining_amount': vault.remaining_amount
        })

    @app.route('/api/vaults/<vault_id>/events')
    def get_events(vault_id):
        events = [
            event_to_dict(e) for e in vaults().emitter.history()
            if getattr(e, 'vault_id', None) == vault_id
        ]
        return jsonify({'events': events})

    return app


app = create_app()

if __name__ == "__main__":
    app.run(
        host="0.0.0.0",
        port=PORT,
        debug=WEB_DEBUG
    )
