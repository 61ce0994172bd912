from django.db.models import Count
from main.models import User


class RoleService:

    ROLES = {
        User.Role.ADMIN: {
            'name': 'Admin',
            'description': 'System administration and ledger corrections',
            'duties': ['adjust_ledger', 'receive_stock', 'create_orders'],
        },
        User.Role.CEO: {
            'name': 'CEO',
            'description': 'Final approval of orders and invoices',
            'duties': ['approve_orders', 'final_invoice_approval', 'decide_requests', 'cancel_orders'],
        },
        User.Role.MANAGER: {
            'name': 'Manager',
            'description': 'Approves orders and first-level invoice approval',
            'duties': ['approve_orders', 'manager_invoice_approval', 'decide_requests', 'cancel_orders'],
        },
        User.Role.ACCOUNTANT: {
            'name': 'Accountant',
            'description': 'Reviews orders, generates invoices and signs off received stock',
            'duties': ['review_orders', 'generate_invoices', 'approve_stock', 'cancel_orders'],
        },
        User.Role.ORDER_MANAGER: {
            'name': 'Order Manager',
            'description': 'Submits purchase orders and receives delivered stock',
            'duties': ['create_orders', 'receive_stock', 'sell_chickens'],
        },
        User.Role.CUSTOMER: {
            'name': 'Customer',
            'description': 'Buys chickens',
            'duties': [],
        },
    }

    @staticmethod
    def _user_counts():
        stats = User.objects.filter(is_active=True).values('role').annotate(count=Count('id'))
        return {stat['role']: stat['count'] for stat in stats}

    @staticmethod
    def get_all_roles():
        counts = RoleService._user_counts()
        roles = [
            {
                'code': code,
                'name': data['name'],
                'description': data['description'],
                'duties': data['duties'],
                'user_count': counts.get(code, 0),
            }
            for code, data in RoleService.ROLES.items()
        ]

        return {
            'success': True,
            'roles': roles,
            'count': len(roles)
        }

    @staticmethod
    def get_role(role_code):
        role_code = role_code.upper()

        if role_code not in RoleService.ROLES:
            return {'success': False, 'message': 'Role not found', 'error_code': 'NOT_FOUND'}

        data = RoleService.ROLES[role_code]
        return {
            'success': True,
            'role': {
                'code': role_code,
                'name': data['name'],
                'description': data['description'],
                'duties': data['duties'],
                'user_count': RoleService._user_counts().get(role_code, 0),
            }
        }
